from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from storefront.models.order import PAYMENT_METHODS


class OrderItemIn(BaseModel):
    """
    Either a catalog line ``{product_id, quantity}`` or a custom guest line
    ``{name, price_cents, quantity}``. A client price on a catalog line is ignored.
    """

    product_id: int | None = Field(default=None, ge=1)
    quantity: int = Field(ge=1)
    name: str | None = Field(default=None, min_length=1, max_length=150)
    price_cents: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def catalog_or_custom(self):
        if self.product_id is None and (self.name is None or self.price_cents is None):
            raise ValueError("item needs product_id, or name and price_cents")
        return self

    @property
    def is_custom(self) -> bool:
        return self.product_id is None


class ShippingIn(BaseModel):
    full_name: str | None = Field(default=None, max_length=120)
    street: str | None = Field(default=None, max_length=200)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    country: str | None = Field(default=None, max_length=100)
    postal_code: str | None = Field(default=None, max_length=20)


class GuestIn(BaseModel):
    name: str = Field(min_length=2, max_length=120)
    email: str = Field(max_length=255, pattern=r"^\S+@\S+\.\S+$")
    phone: str | None = Field(default=None, max_length=20)


class OrderCreate(BaseModel):
    items: list[OrderItemIn] = Field(min_length=1)
    coupon_code: str | None = Field(default=None, max_length=40)
    payment_method: str = Field(default="none", pattern="^(" + "|".join(PAYMENT_METHODS) + ")$")
    shipping: ShippingIn | None = None
    notes: str | None = Field(default=None, max_length=2000)
    guest: GuestIn | None = None


class CheckoutIn(BaseModel):
    coupon_code: str | None = Field(default=None, max_length=40)
    payment_method: str = Field(default="none", pattern="^(" + "|".join(PAYMENT_METHODS) + ")$")
    shipping: ShippingIn | None = None
    notes: str | None = Field(default=None, max_length=2000)


class OrderStatusUpdate(BaseModel):
    status: str = Field(min_length=1, max_length=20)


class OrderItemOut(BaseModel):
    product_id: int | None = None
    name: str
    image_url: str | None = None
    unit_price_cents: int
    quantity: int
    line_total_cents: int

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    tenant_id: int
    user_id: int | None = None
    guest_name: str | None = None
    guest_email: str | None = None
    status: str
    payment_method: str
    coupon_code: str | None = None
    subtotal_cents: int
    discount_cents: int
    total_cents: int
    currency: str
    notes: str | None = None
    ship_full_name: str | None = None
    ship_street: str | None = None
    ship_city: str | None = None
    ship_state: str | None = None
    ship_country: str | None = None
    ship_postal_code: str | None = None
    items: list[OrderItemOut]
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
