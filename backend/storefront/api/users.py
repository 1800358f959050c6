from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storefront.auth.deps import AuthContext, require_auth, require_permission
from storefront.core.permissions import Action, Resource
from storefront.db import get_db
from storefront.schemas.common import Envelope, Page, ok, paginate
from storefront.schemas.user import ProfileUpdate, UserCreate, UserOut, UserUpdate
from storefront.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=Envelope[Page[UserOut]])
def list_users(
    role_id: int | None = Query(default=None, ge=1),
    is_active: bool | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    auth: AuthContext = Depends(require_permission(Resource.USERS, Action.VIEW)),
    db: Session = Depends(get_db),
):
    users, total = user_service.list_users(db, auth.tenant_id, role_id, is_active, page, limit)
    return ok(paginate([UserOut.model_validate(u) for u in users], total, page, limit))


@router.post("", response_model=Envelope[UserOut], status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    auth: AuthContext = Depends(require_permission(Resource.USERS, Action.CREATE)),
    db: Session = Depends(get_db),
):
    user = user_service.create_user(db, auth.tenant_id, payload)
    return ok(UserOut.model_validate(user), "User created", status.HTTP_201_CREATED)


@router.get("/profile", response_model=Envelope[UserOut])
def get_profile(auth: AuthContext = Depends(require_auth)):
    return ok(UserOut.model_validate(auth.user))


@router.put("/profile", response_model=Envelope[UserOut])
def update_profile(payload: ProfileUpdate, auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    user = user_service.update_profile(db, auth.user, payload)
    return ok(UserOut.model_validate(user), "Profile updated")


@router.get("/{user_id}", response_model=Envelope[UserOut])
def get_user(
    user_id: int,
    auth: AuthContext = Depends(require_permission(Resource.USERS, Action.VIEW)),
    db: Session = Depends(get_db),
):
    return ok(UserOut.model_validate(user_service.get_user(db, auth.tenant_id, user_id)))


@router.put("/{user_id}", response_model=Envelope[UserOut])
def update_user(
    user_id: int,
    payload: UserUpdate,
    auth: AuthContext = Depends(require_permission(Resource.USERS, Action.EDIT)),
    db: Session = Depends(get_db),
):
    user = user_service.update_user(db, auth.tenant_id, user_id, payload, acting_user_id=auth.user_id)
    return ok(UserOut.model_validate(user), "User updated")


@router.delete("/{user_id}", response_model=Envelope[UserOut])
def deactivate_user(
    user_id: int,
    auth: AuthContext = Depends(require_permission(Resource.USERS, Action.DELETE)),
    db: Session = Depends(get_db),
):
    user = user_service.deactivate_user(db, auth.tenant_id, user_id, acting_user_id=auth.user_id)
    return ok(UserOut.model_validate(user), "User deactivated")
