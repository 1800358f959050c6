from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _lower(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip().lower() or None


def _lower_tags(tags: list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    return [t for t in (tag.strip().lower() for tag in tags) if t]


class ProductCreate(BaseModel):
    name: str = Field(min_length=2, max_length=150)
    slug: str | None = Field(default=None, max_length=160, pattern=r"^[a-z0-9-]+$")
    description: str | None = Field(default=None, max_length=5000)
    price_cents: int = Field(ge=0)
    currency: str = Field(default="MXN", min_length=3, max_length=3)
    stock: int = Field(default=0, ge=0)
    category: str | None = Field(default=None, max_length=80)
    image_url: str | None = Field(default=None, max_length=500)
    tags: list[str] = Field(default_factory=list)

    @field_validator("category")
    @classmethod
    def lower_category(cls, value: str | None) -> str | None:
        return _lower(value)

    @field_validator("tags")
    @classmethod
    def lower_tags(cls, value: list[str]) -> list[str]:
        return _lower_tags(value)


class ProductUpdate(BaseModel):
    # stock is not editable here; it moves only through /stock
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=2, max_length=150)
    slug: str | None = Field(default=None, max_length=160, pattern=r"^[a-z0-9-]+$")
    description: str | None = Field(default=None, max_length=5000)
    price_cents: int | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    category: str | None = Field(default=None, max_length=80)
    image_url: str | None = Field(default=None, max_length=500)
    tags: list[str] | None = None
    is_active: bool | None = None

    @field_validator("category")
    @classmethod
    def lower_category(cls, value: str | None) -> str | None:
        return _lower(value)

    @field_validator("tags")
    @classmethod
    def lower_tags(cls, value: list[str] | None) -> list[str] | None:
        return _lower_tags(value)


class StockAdjust(BaseModel):
    delta: int


class ProductOut(BaseModel):
    id: int
    tenant_id: int
    name: str
    slug: str
    description: str | None = None
    price_cents: int
    currency: str
    stock: int
    category: str | None = None
    image_url: str | None = None
    tags: list[str]
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
