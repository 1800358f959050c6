from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from storefront.auth.deps import AuthContext, require_permission
from storefront.core.permissions import Action, Resource
from storefront.db import get_db
from storefront.schemas.common import Envelope, ok
from storefront.schemas.role import RoleCreate, RoleOut, RoleUpdate
from storefront.services import role_service

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("", response_model=Envelope[list[RoleOut]])
def list_roles(
    auth: AuthContext = Depends(require_permission(Resource.ROLES, Action.VIEW)),
    db: Session = Depends(get_db),
):
    return ok([RoleOut.model_validate(r) for r in role_service.list_roles(db, auth.tenant_id)])


@router.post("", response_model=Envelope[RoleOut], status_code=status.HTTP_201_CREATED)
def create_role(
    payload: RoleCreate,
    auth: AuthContext = Depends(require_permission(Resource.ROLES, Action.CREATE)),
    db: Session = Depends(get_db),
):
    role = role_service.create_role(db, auth.tenant_id, payload)
    return ok(RoleOut.model_validate(role), "Role created", status.HTTP_201_CREATED)


@router.put("/{role_id}", response_model=Envelope[RoleOut])
def update_role(
    role_id: int,
    payload: RoleUpdate,
    auth: AuthContext = Depends(require_permission(Resource.ROLES, Action.EDIT)),
    db: Session = Depends(get_db),
):
    role = role_service.update_role(db, auth.tenant_id, role_id, payload)
    return ok(RoleOut.model_validate(role), "Role updated")


@router.delete("/{role_id}", response_model=Envelope[None])
def delete_role(
    role_id: int,
    auth: AuthContext = Depends(require_permission(Resource.ROLES, Action.DELETE)),
    db: Session = Depends(get_db),
):
    role_service.delete_role(db, auth.tenant_id, role_id)
    return ok(None, "Role deleted")
