from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

SLUG_PATTERN = r"^[a-z0-9-]+$"
EMAIL_PATTERN = r"^\S+@\S+\.\S+$"


class TenantCreate(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    slug: str | None = Field(default=None, max_length=100, pattern=SLUG_PATTERN)
    domain: str | None = Field(default=None, max_length=255)
    contact_email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    contact_phone: str | None = Field(default=None, max_length=40)
    street: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None
    currency: str = Field(default="MXN", min_length=3, max_length=3)
    language: str = Field(default="es", max_length=8)
    timezone: str = Field(default="America/Mexico_City", max_length=64)
    logo: str | None = Field(default=None, max_length=500)


class TenantUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=3, max_length=100)
    slug: str | None = Field(default=None, max_length=100, pattern=SLUG_PATTERN)
    domain: str | None = Field(default=None, max_length=255)
    contact_email: str | None = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    contact_phone: str | None = Field(default=None, max_length=40)
    street: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    language: str | None = Field(default=None, max_length=8)
    timezone: str | None = Field(default=None, max_length=64)
    logo: str | None = Field(default=None, max_length=500)


class TenantStatusUpdate(BaseModel):
    status: str = Field(pattern=r"^(trial|active|inactive|suspended)$")


class TenantOut(BaseModel):
    id: int
    name: str
    slug: str
    domain: str | None = None
    contact_email: str
    contact_phone: str | None = None
    status: str
    currency: str
    language: str
    timezone: str
    plan: str
    subscription_active: bool
    logo: str | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class TenantPublicOut(BaseModel):
    id: int
    name: str
    slug: str
    domain: str | None = None
    status: str
    logo: str | None = None

    model_config = ConfigDict(from_attributes=True)


class TenantStats(BaseModel):
    tenant: TenantPublicOut
    users_total: int
    users_active: int
    users_inactive: int
    roles: int
    products: int
    orders: int
    revenue_cents: int
