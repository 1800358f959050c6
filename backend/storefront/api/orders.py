from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storefront.auth.deps import AuthContext, optional_auth, require_permission
from storefront.core.errors import Forbidden
from storefront.core.permissions import Action, Resource
from storefront.db import get_db
from storefront.schemas.common import Envelope, Page, ok, paginate
from storefront.schemas.order import OrderCreate, OrderOut, OrderStatusUpdate
from storefront.services import order_service
from storefront.tenancy.resolution import TenantContext, require_tenant

router = APIRouter(prefix="/orders", tags=["orders"])


def _owner_scope(auth: AuthContext) -> int | None:
    return None if auth.can(Resource.ORDERS, Action.VIEW_ALL) else auth.user_id


@router.post("", response_model=Envelope[OrderOut], status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    tenant: TenantContext = Depends(require_tenant),
    auth: Optional[AuthContext] = Depends(optional_auth),
    db: Session = Depends(get_db),
):
    if auth is not None and not auth.can(Resource.ORDERS, Action.CREATE):
        raise Forbidden("You do not have permission to create orders")
    user_id = auth.user_id if auth is not None else None
    order = order_service.create_order(db, tenant.tenant_id, user_id, payload)
    return ok(OrderOut.model_validate(order), "Order placed", status.HTTP_201_CREATED)


@router.get("", response_model=Envelope[Page[OrderOut]])
def list_orders(
    status_filter: str | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    auth: AuthContext = Depends(require_permission(Resource.ORDERS, Action.VIEW)),
    db: Session = Depends(get_db),
):
    orders, total = order_service.list_orders(db, auth.tenant_id, _owner_scope(auth), status_filter, page, limit)
    return ok(paginate([OrderOut.model_validate(o) for o in orders], total, page, limit))


@router.get("/{order_id}", response_model=Envelope[OrderOut])
def get_order(
    order_id: int,
    auth: AuthContext = Depends(require_permission(Resource.ORDERS, Action.VIEW)),
    db: Session = Depends(get_db),
):
    order = order_service.get_order(db, auth.tenant_id, order_id, _owner_scope(auth))
    return ok(OrderOut.model_validate(order))


@router.patch("/{order_id}/status", response_model=Envelope[OrderOut])
def update_status(
    order_id: int,
    payload: OrderStatusUpdate,
    auth: AuthContext = Depends(require_permission(Resource.ORDERS, Action.UPDATE_STATUS)),
    db: Session = Depends(get_db),
):
    order = order_service.update_status(db, auth.tenant_id, order_id, payload.status)
    return ok(OrderOut.model_validate(order), "Order status updated")


@router.post("/{order_id}/cancel", response_model=Envelope[OrderOut])
def cancel_order(
    order_id: int,
    auth: AuthContext = Depends(require_permission(Resource.ORDERS, Action.CANCEL)),
    db: Session = Depends(get_db),
):
    order = order_service.cancel_order(db, auth.tenant_id, order_id, _owner_scope(auth))
    return ok(OrderOut.model_validate(order), "Order cancelled")
