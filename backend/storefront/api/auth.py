import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from storefront.auth.deps import AuthContext, require_auth
from storefront.core.security import create_access_token
from storefront.db import get_db
from storefront.models.user import User
from storefront.rate_limiter import auth_rate_limit
from storefront.schemas.common import Envelope, ok
from storefront.schemas.user import AuthOut, LoginIn, RegisterIn, UserOut
from storefront.services import user_service
from storefront.tenancy.resolution import TenantContext, require_tenant

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)


def _auth_out(user: User, message: str, status_code: int) -> AuthOut:
    token = create_access_token(user_id=user.id, tenant_id=user.tenant_id, role_id=user.role_id, email=user.email)
    return AuthOut(message=message, status_code=status_code, user=UserOut.model_validate(user), token=token)


@router.post(
    "/register",
    response_model=AuthOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limit)],
)
def register(payload: RegisterIn, tenant: TenantContext = Depends(require_tenant), db: Session = Depends(get_db)):
    user = user_service.register_user(db, tenant.tenant_id, payload)
    return _auth_out(user, "User registered", status.HTTP_201_CREATED)


@router.post("/login", response_model=AuthOut, dependencies=[Depends(auth_rate_limit)])
def login(payload: LoginIn, tenant: TenantContext = Depends(require_tenant), db: Session = Depends(get_db)):
    user = user_service.authenticate(db, tenant.tenant_id, payload.email, payload.password)
    logger.info("Login: tenant=%s user=%s", tenant.tenant_id, user.id)
    return _auth_out(user, "Login successful", status.HTTP_200_OK)


@router.post("/logout", response_model=Envelope[None])
def logout(auth: AuthContext = Depends(require_auth)):
    # tokens are stateless; the client just drops it
    return ok(None, "Logged out")


@router.get("/me", response_model=Envelope[UserOut])
def me(auth: AuthContext = Depends(require_auth)):
    return ok(UserOut.model_validate(auth.user))
