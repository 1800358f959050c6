"""
Orders: placement with server-side pricing, coupons, the status machine and
cancellation with restock.

    pending -> confirmed -> preparing -> ready -> delivered
    pending | confirmed -> cancelled

Forward moves may skip steps; nothing moves backwards; delivered and
cancelled are terminal.
"""
import logging

from sqlalchemy.orm import Session

from storefront.core.errors import (
    AppError,
    InsufficientStock,
    InvalidStatusTransition,
    NotFoundError,
    ProductNotFound,
    ProductUnavailable,
    ValidationError,
)
from storefront.core.settings import settings
from storefront.models.cart import Cart
from storefront.models.order import Order, OrderItem
from storefront.models.product import Product
from storefront.models.tenant import Tenant
from storefront.schemas.order import OrderCreate
from storefront.services.product_service import apply_stock_delta
from storefront.tenancy.queries import get_owned, scoped_count, scoped_select, scoped_update

logger = logging.getLogger(__name__)

STATUS_CHAIN = ("pending", "confirmed", "preparing", "ready", "delivered")
CANCELLED = "cancelled"
CANCELLABLE_FROM = frozenset({"pending", "confirmed"})
TERMINAL = frozenset({"delivered", CANCELLED})
ORDER_STATUSES = STATUS_CHAIN + (CANCELLED,)

STATUS_ALIASES = {
    "paid": "confirmed",
    "processing": "preparing",
    "shipped": "ready",
}

# percent off the subtotal
COUPONS = {
    "DULCE10": 10,
    "PASTEL5": 5,
    "BIENVENIDO": 15,
}


def normalize_status(name: str) -> str:
    key = (name or "").strip().lower()
    key = STATUS_ALIASES.get(key, key)
    if key not in ORDER_STATUSES:
        raise ValidationError(f"Unknown order status '{name}'")
    return key


def can_transition(current: str, target: str) -> bool:
    if current in TERMINAL or current == target:
        return False
    if target == CANCELLED:
        return current in CANCELLABLE_FROM
    return STATUS_CHAIN.index(target) > STATUS_CHAIN.index(current)


def coupon_percent(code: str | None) -> int:
    if not code:
        return 0
    return COUPONS.get(code.strip().upper(), 0)


def discount_for(subtotal_cents: int, percent: int) -> int:
    # integer round-half-up of subtotal * percent / 100
    return (subtotal_cents * percent + 50) // 100


def _currency(db: Session, tenant_id: int) -> str:
    tenant = db.get(Tenant, tenant_id)
    return tenant.currency if tenant is not None else "MXN"


def _catalog_line(db: Session, tenant_id: int, product_id: int, quantity: int) -> OrderItem:
    product = get_owned(db, Product, tenant_id, product_id)
    if product is None:
        raise ProductNotFound(f"Product {product_id} not found")
    if not product.is_active:
        raise ProductUnavailable(f"Product '{product.name}' is not available")
    if not apply_stock_delta(db, tenant_id, product.id, -quantity):
        raise InsufficientStock(
            f"Insufficient stock for '{product.name}'",
            details={"product_id": product.id, "requested": quantity, "available": product.stock},
        )
    # live catalog price; whatever the client sent is ignored
    return OrderItem(
        product_id=product.id,
        name=product.name,
        image_url=product.image_url,
        unit_price_cents=product.price_cents,
        quantity=quantity,
        line_total_cents=product.price_cents * quantity,
    )


def create_order(
    db: Session,
    tenant_id: int,
    user_id: int | None,
    payload: OrderCreate,
    cart: Cart | None = None,
) -> Order:
    """
    Price, reserve stock and persist in one transaction.

    Any failure (missing product, insufficient stock, ...) rolls back every
    stock decrement made so far. When ``cart`` is given it is marked
    converted in the same transaction.
    """
    is_guest = user_id is None
    if is_guest:
        if not settings.ALLOW_GUEST_CHECKOUT:
            raise ValidationError("Guest checkout is disabled for this store")
        if payload.guest is None:
            raise ValidationError("Guest orders need guest name and email")

    try:
        lines: list[OrderItem] = []
        for item in payload.items:
            if item.is_custom:
                if not is_guest:
                    raise ValidationError("Custom items are only accepted on guest orders")
                lines.append(OrderItem(
                    product_id=None,
                    name=item.name,
                    unit_price_cents=item.price_cents,
                    quantity=item.quantity,
                    line_total_cents=item.price_cents * item.quantity,
                ))
            else:
                lines.append(_catalog_line(db, tenant_id, item.product_id, item.quantity))

        subtotal = sum(line.line_total_cents for line in lines)
        percent = coupon_percent(payload.coupon_code)
        discount = discount_for(subtotal, percent)
        shipping = payload.shipping

        order = Order(
            tenant_id=tenant_id,
            user_id=user_id,
            status="pending",
            payment_method=payload.payment_method,
            notes=payload.notes,
            coupon_code=payload.coupon_code.strip().upper() if percent else None,
            subtotal_cents=subtotal,
            discount_cents=discount,
            total_cents=subtotal - discount,
            currency=_currency(db, tenant_id),
            items=lines,
        )
        if payload.guest is not None and is_guest:
            order.guest_name = payload.guest.name
            order.guest_email = payload.guest.email.strip().lower()
            order.guest_phone = payload.guest.phone
        if shipping is not None:
            order.ship_full_name = shipping.full_name
            order.ship_street = shipping.street
            order.ship_city = shipping.city
            order.ship_state = shipping.state
            order.ship_country = shipping.country
            order.ship_postal_code = shipping.postal_code

        db.add(order)
        if cart is not None:
            cart.status = "converted"
        db.commit()
    except AppError:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.exception("Order placement failed: tenant=%s user=%s", tenant_id, user_id)
        raise

    db.refresh(order)
    logger.info(
        "Order placed: tenant=%s order=%s user=%s total=%s discount=%s",
        tenant_id, order.id, user_id, order.total_cents, order.discount_cents,
    )
    return order


def list_orders(
    db: Session,
    tenant_id: int,
    owner_id: int | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Order], int]:
    """``owner_id`` restricts to one customer's orders; None means every order of the tenant."""
    filters = {}
    if owner_id is not None:
        filters["user_id"] = owner_id
    if status:
        filters["status"] = normalize_status(status)

    total = scoped_count(db, Order, tenant_id, **filters)
    stmt = (
        scoped_select(Order, tenant_id, **filters)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(db.scalars(stmt)), total


def get_order(db: Session, tenant_id: int, order_id: int, owner_id: int | None = None) -> Order:
    order = get_owned(db, Order, tenant_id, order_id)
    # someone else's order looks exactly like a missing one
    if order is None or (owner_id is not None and order.user_id != owner_id):
        raise NotFoundError("Order not found")
    return order


def _restock(db: Session, tenant_id: int, order: Order) -> None:
    for line in order.items:
        if line.product_id is not None:
            # purged products simply match no row
            apply_stock_delta(db, tenant_id, line.product_id, line.quantity)


def _sources_for(target: str) -> frozenset[str]:
    """Statuses an order may be in for a move to ``target`` to be legal."""
    if target == CANCELLED:
        return CANCELLABLE_FROM
    return frozenset(STATUS_CHAIN[:STATUS_CHAIN.index(target)])


def _claim_transition(db: Session, tenant_id: int, order: Order, target: str) -> None:
    """
    Compare-and-set on the status column:

        UPDATE orders SET status = :target
        WHERE tenant_id = :tid AND id = :id AND status IN (:sources)

    Of two concurrent requests for the same move only one matches a row; the
    other is rejected before it can touch stock.
    """
    if not can_transition(order.status, target):
        raise InvalidStatusTransition(f"Cannot move order from '{order.status}' to '{target}'")
    stmt = (
        scoped_update(Order, tenant_id, Order.id == order.id, Order.status.in_(_sources_for(target)))
        .values(status=target)
    )
    if db.execute(stmt).rowcount != 1:
        db.rollback()
        db.refresh(order)
        raise InvalidStatusTransition(f"Cannot move order from '{order.status}' to '{target}'")


def cancel_order(db: Session, tenant_id: int, order_id: int, owner_id: int | None = None) -> Order:
    order = get_order(db, tenant_id, order_id, owner_id)
    _claim_transition(db, tenant_id, order, CANCELLED)
    try:
        _restock(db, tenant_id, order)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(order)
    logger.info("Order cancelled: tenant=%s order=%s", tenant_id, order.id)
    return order


def update_status(db: Session, tenant_id: int, order_id: int, status: str) -> Order:
    target = normalize_status(status)
    if target == CANCELLED:
        return cancel_order(db, tenant_id, order_id)

    order = get_order(db, tenant_id, order_id)
    previous = order.status
    _claim_transition(db, tenant_id, order, target)
    db.commit()
    db.refresh(order)
    logger.info("Order status: tenant=%s order=%s %s -> %s", tenant_id, order.id, previous, target)
    return order
