from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db import Base, TimestampMixin, utcnow

TENANT_STATUSES = ("trial", "active", "inactive", "suspended")
OPERATIONAL_STATUSES = ("trial", "active")
SUBSCRIPTION_PLANS = ("free", "basic", "premium", "enterprise")


class Tenant(TimestampMixin, Base):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    domain: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)

    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_phone: Mapped[str | None] = mapped_column(String(40), nullable=True)

    street: Mapped[str | None] = mapped_column(String(200), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # trial|active|inactive|suspended
    status: Mapped[str] = mapped_column(String(20), default="trial", nullable=False, index=True)

    currency: Mapped[str] = mapped_column(String(3), default="MXN", nullable=False)
    language: Mapped[str] = mapped_column(String(8), default="es", nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), default="America/Mexico_City", nullable=False)

    plan: Mapped[str] = mapped_column(String(20), default="free", nullable=False, index=True)
    subscription_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    subscription_start: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    subscription_end: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    logo: Mapped[str | None] = mapped_column(String(500), nullable=True)

    @property
    def is_operational(self) -> bool:
        return self.status in OPERATIONAL_STATUSES and bool(self.subscription_active)
