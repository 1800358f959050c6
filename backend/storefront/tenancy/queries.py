"""
Tenant-scoped query helpers.

Every statement against a tenant-owned table is built here, so the tenant
filter is merged in one code path. Services never call ``select(Product)``
(or User, Role, Cart, Order) directly.

Usage:
    stmt = scoped_select(Product, tenant_id, is_active=True).order_by(Product.id)
    product = require_owned(db, Product, tenant_id, product_id, "Product")
"""
from __future__ import annotations

from typing import Any, Type, TypeVar

from sqlalchemy import Select, Update, func, select, update
from sqlalchemy.orm import Session

from storefront.core.errors import InternalError, NotFoundError
from storefront.db import Base
from storefront.models.cart import Cart
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.models.role import Role
from storefront.models.user import User

T = TypeVar("T", bound=Base)

TENANT_OWNED: tuple[type, ...] = (User, Role, Product, Cart, Order)


def _require_tenant_model(model: Type[T]) -> None:
    if model not in TENANT_OWNED:
        raise ValueError(f"{model.__name__} is not a tenant-owned model")


def tenant_criteria(model: Type[T], tenant_id: int | None, *criteria: Any, **filters: Any) -> list[Any]:
    """Merge the caller's filters with ``tenant_id == <resolved tenant>``."""
    _require_tenant_model(model)
    if tenant_id is None:
        raise InternalError("Tenant id not available for a tenant-scoped query")

    clauses: list[Any] = [model.tenant_id == tenant_id]
    clauses.extend(criteria)
    for name, value in filters.items():
        clauses.append(getattr(model, name) == value)
    return clauses


def scoped_select(model: Type[T], tenant_id: int | None, *criteria: Any, **filters: Any) -> Select:
    return select(model).where(*tenant_criteria(model, tenant_id, *criteria, **filters))


def scoped_update(model: Type[T], tenant_id: int | None, *criteria: Any, **filters: Any) -> Update:
    return (
        update(model)
        .where(*tenant_criteria(model, tenant_id, *criteria, **filters))
        .execution_options(synchronize_session=False)
    )


def scoped_count(db: Session, model: Type[T], tenant_id: int | None, *criteria: Any, **filters: Any) -> int:
    stmt = select(func.count()).select_from(model).where(*tenant_criteria(model, tenant_id, *criteria, **filters))
    return int(db.scalar(stmt) or 0)


def get_owned(db: Session, model: Type[T], tenant_id: int | None, entity_id: int) -> T | None:
    """Fetch by id inside the tenant; another tenant's row is indistinguishable from a missing one."""
    return db.scalar(scoped_select(model, tenant_id, model.id == entity_id))


def require_owned(db: Session, model: Type[T], tenant_id: int | None, entity_id: int, label: str | None = None) -> T:
    obj = get_owned(db, model, tenant_id, entity_id)
    if obj is None:
        raise NotFoundError(f"{label or model.__name__} not found")
    return obj
