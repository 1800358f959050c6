"""
Tenant resolution.

Each strategy looks at one signal of the request and returns a tenant
identifier or ``None``. ``resolve_tenant`` tries them in order and stops at
the first hit:

    token     -> tenant id from a bearer token that decodes cleanly
    header    -> x-tenant-id (configurable)
    path      -> /t/{tenant_slug}/...
    subdomain -> acme.example.com -> "acme"

The resolved tenant is attached to ``request.state.tenant`` for everything
downstream.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Sequence

from fastapi import Depends, Request
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from storefront.core.errors import AppError, TenantInactive, TenantNotFound, TenantRequired
from storefront.core.security import bearer_token, decode_token
from storefront.core.settings import settings
from storefront.db import get_db
from storefront.models.tenant import Tenant

logger = logging.getLogger(__name__)

IGNORED_SUBDOMAINS = frozenset({"www", "api", "admin", "app", "localhost"})


class TenantSource(str, Enum):
    TOKEN = "token"
    HEADER = "header"
    PATH = "path"
    SUBDOMAIN = "subdomain"


@dataclass(frozen=True)
class TenantContext:
    """Immutable view of the tenant a request is allowed to touch."""

    tenant_id: int
    slug: str
    name: str
    status: str
    source: TenantSource

    def __post_init__(self):
        if self.tenant_id <= 0:
            raise ValueError(f"tenant_id must be positive, got {self.tenant_id}")


class TenantStrategy(Protocol):
    source: TenantSource

    def extract(self, request: Request) -> Optional[str]:
        ...


class TokenClaimStrategy:
    source = TenantSource.TOKEN

    def extract(self, request: Request) -> Optional[str]:
        token = bearer_token(request.headers.get("authorization"))
        if not token:
            return None
        try:
            claims = decode_token(token)
        except AppError:
            # the auth gate reports bad tokens; resolution just moves on
            return None
        return str(claims["tenant_id"])


class HeaderStrategy:
    source = TenantSource.HEADER

    def __init__(self, header: str = "x-tenant-id"):
        self.header = header

    def extract(self, request: Request) -> Optional[str]:
        value = (request.headers.get(self.header) or "").strip()
        return value or None


class PathSlugStrategy:
    source = TenantSource.PATH

    def __init__(self, param: str = "tenant_slug"):
        self.param = param

    def extract(self, request: Request) -> Optional[str]:
        value = (request.path_params.get(self.param) or "").strip()
        return value or None


class SubdomainStrategy:
    source = TenantSource.SUBDOMAIN

    def __init__(self, ignored: frozenset[str] = IGNORED_SUBDOMAINS):
        self.ignored = ignored

    def extract(self, request: Request) -> Optional[str]:
        host = (request.headers.get("host") or "").strip().lower()
        if not host:
            return None
        host = host.split(":", 1)[0]
        parts = host.split(".")
        if len(parts) < 3:
            return None
        sub = parts[0]
        if not sub or sub in self.ignored:
            return None
        return sub


def strategies_for(source: str) -> list[TenantStrategy]:
    header = HeaderStrategy(settings.TENANT_HEADER)
    by_source: dict[str, TenantStrategy] = {
        TenantSource.TOKEN.value: TokenClaimStrategy(),
        TenantSource.HEADER.value: header,
        TenantSource.PATH.value: PathSlugStrategy(),
        TenantSource.SUBDOMAIN.value: SubdomainStrategy(),
    }
    if source == "auto":
        return [by_source["token"], by_source["header"], by_source["path"], by_source["subdomain"]]
    if source not in by_source:
        raise ValueError(f"Unknown tenant source: {source}")
    return [by_source[source]]


def find_tenant(db: Session, identifier: str) -> Tenant | None:
    """Numeric identifier -> primary key; anything else -> slug or custom domain."""
    ident = (identifier or "").strip()
    if not ident:
        return None
    if ident.isdigit():
        return db.get(Tenant, int(ident))
    ident = ident.lower()
    return db.scalar(
        select(Tenant).where(or_(func.lower(Tenant.slug) == ident, func.lower(Tenant.domain) == ident))
    )


def resolve_tenant(
    request: Request,
    db: Session,
    strategies: Sequence[TenantStrategy],
    required: bool = True,
) -> Optional[TenantContext]:
    for strategy in strategies:
        identifier = strategy.extract(request)
        if not identifier:
            continue

        tenant = find_tenant(db, identifier)
        if tenant is None:
            raise TenantNotFound(f"Tenant '{identifier}' not found")
        if not tenant.is_operational:
            raise TenantInactive(f"Tenant '{tenant.name}' is not active (status: {tenant.status})")

        ctx = TenantContext(
            tenant_id=tenant.id,
            slug=tenant.slug,
            name=tenant.name,
            status=tenant.status,
            source=strategy.source,
        )
        request.state.tenant = ctx
        logger.debug("Resolved tenant %s (id=%s) from %s", ctx.slug, ctx.tenant_id, ctx.source.value)
        return ctx

    if required:
        raise TenantRequired()
    return None


# ────────────────────────────────────────────────────────────────
# FastAPI dependencies
# ────────────────────────────────────────────────────────────────

def require_tenant(request: Request, db: Session = Depends(get_db)) -> TenantContext:
    ctx = resolve_tenant(request, db, strategies_for(settings.TENANT_SOURCE), required=True)
    assert ctx is not None
    return ctx


def optional_tenant(request: Request, db: Session = Depends(get_db)) -> Optional[TenantContext]:
    """For tenant-optional routes: resolves when a signal is present, never demands one."""
    return resolve_tenant(request, db, strategies_for(settings.TENANT_SOURCE), required=False)
