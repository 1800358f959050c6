import logging

from sqlalchemy.orm import Session

from storefront.core.errors import NotFoundError, ProductUnavailable, ValidationError
from storefront.models.cart import Cart, CartItem
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.schemas.order import CheckoutIn, OrderCreate, OrderItemIn
from storefront.services import order_service
from storefront.services.product_service import get_product
from storefront.tenancy.queries import scoped_select

logger = logging.getLogger(__name__)


def get_or_create_open_cart(db: Session, tenant_id: int, user_id: int) -> Cart:
    cart = db.scalar(scoped_select(Cart, tenant_id, user_id=user_id, status="open").order_by(Cart.id))
    if cart is None:
        cart = Cart(tenant_id=tenant_id, user_id=user_id, status="open", total_cents=0)
        db.add(cart)
        db.commit()
        db.refresh(cart)
    return cart


def _active_product(db: Session, tenant_id: int, product_id: int) -> Product:
    product = get_product(db, tenant_id, product_id)
    if not product.is_active:
        raise ProductUnavailable(f"Product '{product.name}' is not available")
    return product


def add_item(db: Session, tenant_id: int, user_id: int, product_id: int, quantity: int = 1) -> Cart:
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    product = _active_product(db, tenant_id, product_id)
    cart = get_or_create_open_cart(db, tenant_id, user_id)

    item = cart.find_item(product.id)
    if item is None:
        cart.items.append(CartItem(
            product_id=product.id,
            quantity=quantity,
            price_snapshot_cents=product.price_cents,
        ))
    else:
        # the snapshot taken on first add is kept
        item.quantity += quantity
    db.commit()
    db.refresh(cart)
    return cart


def update_item_quantity(db: Session, tenant_id: int, user_id: int, product_id: int, quantity: int) -> Cart:
    cart = get_or_create_open_cart(db, tenant_id, user_id)
    item = cart.find_item(product_id)
    if item is None:
        raise NotFoundError("Product not in cart")
    if quantity <= 0:
        cart.items.remove(item)
    else:
        item.quantity = quantity
    db.commit()
    db.refresh(cart)
    return cart


def remove_item(db: Session, tenant_id: int, user_id: int, product_id: int) -> Cart:
    return update_item_quantity(db, tenant_id, user_id, product_id, 0)


def clear(db: Session, tenant_id: int, user_id: int) -> Cart:
    cart = get_or_create_open_cart(db, tenant_id, user_id)
    cart.items.clear()
    # no dirty item left for the flush hook when the cart was already empty
    cart.total_cents = 0
    db.commit()
    db.refresh(cart)
    return cart


def checkout(db: Session, tenant_id: int, user_id: int, payload: CheckoutIn) -> Order:
    """Turn the open cart into an order priced at live catalog prices."""
    cart = get_or_create_open_cart(db, tenant_id, user_id)
    if not cart.items:
        raise ValidationError("Cart is empty")

    order_payload = OrderCreate(
        items=[OrderItemIn(product_id=i.product_id, quantity=i.quantity) for i in cart.items],
        coupon_code=payload.coupon_code,
        payment_method=payload.payment_method,
        shipping=payload.shipping,
        notes=payload.notes,
    )
    order = order_service.create_order(db, tenant_id, user_id, order_payload, cart=cart)
    logger.info("Cart checked out: tenant=%s cart=%s order=%s", tenant_id, cart.id, order.id)
    return order
