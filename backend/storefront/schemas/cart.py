from pydantic import BaseModel, ConfigDict, Field


class CartItemAdd(BaseModel):
    product_id: int = Field(ge=1)
    quantity: int = Field(default=1, ge=1)


class CartItemQuantity(BaseModel):
    # 0 removes the line
    quantity: int = Field(ge=0)


class CartItemOut(BaseModel):
    product_id: int
    quantity: int
    price_snapshot_cents: int
    subtotal_cents: int

    model_config = ConfigDict(from_attributes=True)


class CartOut(BaseModel):
    id: int
    tenant_id: int
    user_id: int
    status: str
    currency: str
    total_cents: int
    items: list[CartItemOut]

    model_config = ConfigDict(from_attributes=True)
