import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.core.security import create_access_token
from storefront.db import Base, get_db
from storefront.main import app
from storefront.models.user import User
from storefront.rate_limiter import rate_limiter
from storefront.schemas.product import ProductCreate
from storefront.schemas.tenant import TenantCreate
from storefront.schemas.user import UserCreate
from storefront.services import product_service, role_service, tenant_service, user_service

PASSWORD = "Secret123"


@pytest.fixture()
def engine():
    # one in-memory database shared by every connection of the test
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    rate_limiter.reset()
    # no context manager: the lifespan would open the configured DATABASE_URL
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
    rate_limiter.reset()


def make_tenant(db, slug: str, status: str = "active", **extra):
    payload = TenantCreate(name=extra.pop("name", f"Pasteleria {slug}"), slug=slug, contact_email=f"owner@{slug}.mx", **extra)
    tenant = tenant_service.create_tenant(db, payload)
    if status != tenant.status:
        tenant = tenant_service.set_status(db, tenant, status)
    return tenant


def make_user(db, tenant, role_slug: str = "customer", email: str | None = None) -> User:
    role = role_service.get_role_by_slug(db, tenant.id, role_slug)
    payload = UserCreate(
        first_name="Ana",
        last_name="Lopez",
        email=email or f"{role_slug}@{tenant.slug}.mx",
        password=PASSWORD,
        role_id=role.id,
    )
    return user_service.create_user(db, tenant.id, payload)


def token_for(user: User) -> str:
    return create_access_token(user_id=user.id, tenant_id=user.tenant_id, role_id=user.role_id, email=user.email)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}


def make_product(db, tenant, name: str = "Pastel de chocolate", price_cents: int = 25000, stock: int = 10, **extra):
    payload = ProductCreate(name=name, price_cents=price_cents, stock=stock, **extra)
    return product_service.create_product(db, tenant.id, payload)


@pytest.fixture()
def shop(db):
    return make_tenant(db, "dulce")


@pytest.fixture()
def other_shop(db):
    return make_tenant(db, "otra")


@pytest.fixture()
def admin(db, shop):
    return make_user(db, shop, "admin")


@pytest.fixture()
def seller(db, shop):
    return make_user(db, shop, "seller")


@pytest.fixture()
def customer(db, shop):
    return make_user(db, shop, "customer")
