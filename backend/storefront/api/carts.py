from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from storefront.auth.deps import AuthContext, require_auth
from storefront.db import get_db
from storefront.schemas.cart import CartItemAdd, CartItemQuantity, CartOut
from storefront.schemas.common import Envelope, ok
from storefront.schemas.order import CheckoutIn, OrderOut
from storefront.services import cart_service

router = APIRouter(prefix="/carts", tags=["carts"])


@router.get("", response_model=Envelope[CartOut])
def get_cart(auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    cart = cart_service.get_or_create_open_cart(db, auth.tenant_id, auth.user_id)
    return ok(CartOut.model_validate(cart))


@router.post("/items", response_model=Envelope[CartOut], status_code=status.HTTP_201_CREATED)
def add_item(payload: CartItemAdd, auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    cart = cart_service.add_item(db, auth.tenant_id, auth.user_id, payload.product_id, payload.quantity)
    return ok(CartOut.model_validate(cart), "Item added", status.HTTP_201_CREATED)


@router.put("/items/{product_id}", response_model=Envelope[CartOut])
def update_item(
    product_id: int,
    payload: CartItemQuantity,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    cart = cart_service.update_item_quantity(db, auth.tenant_id, auth.user_id, product_id, payload.quantity)
    return ok(CartOut.model_validate(cart), "Cart updated")


@router.delete("/items/{product_id}", response_model=Envelope[CartOut])
def remove_item(product_id: int, auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    cart = cart_service.remove_item(db, auth.tenant_id, auth.user_id, product_id)
    return ok(CartOut.model_validate(cart), "Item removed")


@router.delete("/clear", response_model=Envelope[CartOut])
def clear_cart(auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    cart = cart_service.clear(db, auth.tenant_id, auth.user_id)
    return ok(CartOut.model_validate(cart), "Cart cleared")


@router.post("/checkout", response_model=Envelope[OrderOut], status_code=status.HTTP_201_CREATED)
def checkout(payload: CheckoutIn, auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    order = cart_service.checkout(db, auth.tenant_id, auth.user_id, payload)
    return ok(OrderOut.model_validate(order), "Order placed", status.HTTP_201_CREATED)
