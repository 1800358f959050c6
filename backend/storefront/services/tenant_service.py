"""
Tenant registry: creation with its system roles, lookup, lifecycle and stats.

Tenants are the one table that is not tenant-scoped, so this module queries
``Tenant`` directly; everything below a tenant goes through tenancy.queries.
"""
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from storefront.core.errors import DuplicateKeyError, ValidationError
from storefront.core.text import slugify
from storefront.models.cart import Cart, CartItem
from storefront.models.order import Order, OrderItem
from storefront.models.product import Product
from storefront.models.role import Role
from storefront.models.tenant import TENANT_STATUSES, Tenant
from storefront.models.user import User
from storefront.schemas.tenant import TenantCreate, TenantUpdate
from storefront.services.role_service import create_default_roles
from storefront.tenancy.queries import scoped_count, scoped_select, tenant_criteria
from storefront.tenancy.resolution import find_tenant

logger = logging.getLogger(__name__)

__all__ = [
    "create_tenant",
    "find_tenant",
    "update_tenant",
    "set_status",
    "deactivate_tenant",
    "purge_tenant",
    "tenant_stats",
]


def _norm(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


def _ensure_unique(db: Session, slug: str | None, domain: str | None, exclude_id: int | None = None) -> None:
    if slug:
        stmt = select(Tenant.id).where(func.lower(Tenant.slug) == slug)
        if exclude_id is not None:
            stmt = stmt.where(Tenant.id != exclude_id)
        if db.scalar(stmt) is not None:
            raise DuplicateKeyError(f"Tenant slug '{slug}' is already taken")
    if domain:
        stmt = select(Tenant.id).where(func.lower(Tenant.domain) == domain)
        if exclude_id is not None:
            stmt = stmt.where(Tenant.id != exclude_id)
        if db.scalar(stmt) is not None:
            raise DuplicateKeyError(f"Domain '{domain}' is already taken")


def create_tenant(db: Session, payload: TenantCreate) -> Tenant:
    data = payload.model_dump()
    slug = _norm(data.pop("slug")) or slugify(payload.name)
    if not slug:
        raise ValidationError("Could not derive a slug from the tenant name")
    domain = _norm(data.pop("domain"))
    data["contact_email"] = data["contact_email"].strip().lower()

    _ensure_unique(db, slug, domain)

    tenant = Tenant(slug=slug, domain=domain, status="trial", **data)
    db.add(tenant)
    try:
        db.flush()
        create_default_roles(db, tenant.id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(tenant)
    logger.info("Tenant created: id=%s slug=%s", tenant.id, tenant.slug)
    return tenant


def update_tenant(db: Session, tenant: Tenant, payload: TenantUpdate) -> Tenant:
    changes = payload.model_dump(exclude_unset=True)
    if "slug" in changes:
        changes["slug"] = _norm(changes["slug"])
        if not changes["slug"]:
            raise ValidationError("Tenant slug cannot be empty")
    if "domain" in changes:
        changes["domain"] = _norm(changes["domain"])
    if "contact_email" in changes and changes["contact_email"]:
        changes["contact_email"] = changes["contact_email"].strip().lower()

    _ensure_unique(db, changes.get("slug"), changes.get("domain"), exclude_id=tenant.id)

    for field, value in changes.items():
        setattr(tenant, field, value)
    db.commit()
    db.refresh(tenant)
    return tenant


def set_status(db: Session, tenant: Tenant, status: str) -> Tenant:
    if status not in TENANT_STATUSES:
        raise ValidationError(f"Unknown tenant status '{status}'")
    tenant.status = status
    db.commit()
    db.refresh(tenant)
    logger.info("Tenant %s status -> %s", tenant.id, status)
    return tenant


def deactivate_tenant(db: Session, tenant: Tenant) -> Tenant:
    return set_status(db, tenant, "inactive")


def purge_tenant(db: Session, tenant: Tenant) -> None:
    """Irreversible: removes the tenant and everything it owns."""
    tid = tenant.id
    order_ids = select(Order.id).where(*tenant_criteria(Order, tid))
    cart_ids = select(Cart.id).where(*tenant_criteria(Cart, tid))
    try:
        db.execute(delete(OrderItem).where(OrderItem.order_id.in_(order_ids)))
        db.execute(delete(Order).where(*tenant_criteria(Order, tid)))
        db.execute(delete(CartItem).where(CartItem.cart_id.in_(cart_ids)))
        db.execute(delete(Cart).where(*tenant_criteria(Cart, tid)))
        db.execute(delete(Product).where(*tenant_criteria(Product, tid)))
        db.execute(delete(User).where(*tenant_criteria(User, tid)))
        db.execute(delete(Role).where(*tenant_criteria(Role, tid)))
        db.execute(delete(Tenant).where(Tenant.id == tid))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expunge_all()
    logger.warning("Tenant purged: id=%s slug=%s", tid, tenant.slug)


def tenant_stats(db: Session, tenant: Tenant) -> dict:
    tid = tenant.id
    users_total = scoped_count(db, User, tid)
    users_active = scoped_count(db, User, tid, is_active=True)
    revenue = db.scalar(
        scoped_select(Order, tid, Order.status != "cancelled")
        .with_only_columns(func.coalesce(func.sum(Order.total_cents), 0))
    )
    return {
        "tenant": tenant,
        "users_total": users_total,
        "users_active": users_active,
        "users_inactive": users_total - users_active,
        "roles": scoped_count(db, Role, tid),
        "products": scoped_count(db, Product, tid),
        "orders": scoped_count(db, Order, tid),
        "revenue_cents": int(revenue or 0),
    }
