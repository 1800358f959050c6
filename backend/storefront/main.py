import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.core.errors import register_exception_handlers
from storefront.core.settings import settings
from storefront.db import Base, init_engine
from storefront.tenancy.resolution import TenantContext, optional_tenant

from storefront.api.auth import router as auth_router
from storefront.api.carts import router as carts_router
from storefront.api.orders import router as orders_router
from storefront.api.products import router as products_router
from storefront.api.roles import router as roles_router
from storefront.api.tenants import router as tenants_router
from storefront.api.users import router as users_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

# tenant-scoped routers; also reachable as /t/{tenant_slug}/...
TENANT_ROUTERS = (auth_router, users_router, roles_router, products_router, carts_router, orders_router)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = init_engine()
    if settings.DB_AUTO_CREATE:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured (DB_AUTO_CREATE)")
    logger.info("%s started: env=%s tenant_source=%s", settings.APP_NAME, settings.ENV, settings.TENANT_SOURCE)
    yield


app = FastAPI(title=settings.APP_NAME, version=VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(tenants_router)
for router in TENANT_ROUTERS:
    app.include_router(router)
    app.include_router(router, prefix="/t/{tenant_slug}", include_in_schema=False)


@app.get("/health")
def health(tenant: Optional[TenantContext] = Depends(optional_tenant)):
    return {
        "ok": True,
        "service": "storefront-api",
        "env": settings.ENV,
        "version": VERSION,
        "tenant_source": settings.TENANT_SOURCE,
        "guest_checkout": settings.ALLOW_GUEST_CHECKOUT,
        "tenant": tenant.slug if tenant else None,
    }
