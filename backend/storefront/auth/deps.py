from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from storefront.core.errors import AppError, Forbidden, Unauthorized
from storefront.core.permissions import Action, Resource, has_permission
from storefront.core.security import bearer_token, decode_token
from storefront.db import get_db
from storefront.models.role import Role
from storefront.models.user import User
from storefront.tenancy.queries import get_owned
from storefront.tenancy.resolution import TenantContext, require_tenant

logger = logging.getLogger(__name__)

INVALID_TOKEN = "Invalid or expired token"
INACTIVE_ACCOUNT = "Account is inactive"


@dataclass(frozen=True)
class AuthContext:
    tenant: TenantContext
    user: User
    role: Role
    grants: frozenset[str]
    claims: Dict[str, Any]

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def tenant_id(self) -> int:
        return self.tenant.tenant_id

    def can(self, resource: Resource | str, action: Action | str) -> bool:
        return has_permission(self.grants, resource, action)


def authenticate_request(request: Request, db: Session, tenant: TenantContext) -> AuthContext:
    """
    Token -> claims -> live user and role inside the resolved tenant.

    A valid signature is not enough: the user must still exist, be active and
    belong to the tenant the request resolved to.
    """
    token = bearer_token(request.headers.get("authorization"))
    if not token:
        raise Unauthorized("Missing bearer token. Use: Authorization: Bearer <token>")

    claims = decode_token(token)

    if int(claims["tenant_id"]) != tenant.tenant_id:
        raise Unauthorized(INVALID_TOKEN)

    user = get_owned(db, User, tenant.tenant_id, int(claims["sub"]))
    if user is None:
        raise Unauthorized(INVALID_TOKEN)
    if not user.is_active:
        raise Unauthorized(INACTIVE_ACCOUNT)

    # permissions always come from the live role row, never from the token
    role = get_owned(db, Role, tenant.tenant_id, user.role_id)
    if role is None:
        raise Unauthorized(INVALID_TOKEN)
    grants = role.grants if role.is_active else frozenset()

    ctx = AuthContext(tenant=tenant, user=user, role=role, grants=grants, claims=claims)
    request.state.auth = ctx
    return ctx


def require_auth(
    request: Request,
    tenant: TenantContext = Depends(require_tenant),
    db: Session = Depends(get_db),
) -> AuthContext:
    return authenticate_request(request, db, tenant)


def optional_auth(
    request: Request,
    tenant: TenantContext = Depends(require_tenant),
    db: Session = Depends(get_db),
) -> Optional[AuthContext]:
    """Same checks as require_auth, but any failure means "guest" instead of 401."""
    if not bearer_token(request.headers.get("authorization")):
        return None
    try:
        return authenticate_request(request, db, tenant)
    except AppError:
        return None


def require_permission(resource: Resource, action: Action) -> Callable[..., AuthContext]:
    """Dependency factory: authenticated, member of the tenant, and granted resource:action."""

    def _dependency(auth: AuthContext = Depends(require_auth)) -> AuthContext:
        if not auth.can(resource, action):
            logger.warning(
                "Permission denied: user=%s role=%s tenant=%s needs %s:%s",
                auth.user.id, auth.role.slug, auth.tenant_id, resource.value, action.value,
            )
            raise Forbidden(f"You do not have permission to {action.value} {resource.value}")
        return auth

    return _dependency
