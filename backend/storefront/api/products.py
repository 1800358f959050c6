from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storefront.auth.deps import AuthContext, optional_auth, require_permission
from storefront.core.errors import ProductNotFound
from storefront.core.permissions import Action, Resource
from storefront.db import get_db
from storefront.schemas.common import Envelope, Page, ok, paginate
from storefront.schemas.product import ProductCreate, ProductOut, ProductUpdate, StockAdjust
from storefront.services import product_service
from storefront.tenancy.resolution import TenantContext, require_tenant

router = APIRouter(prefix="/products", tags=["products"])


def _sees_inactive(auth: Optional[AuthContext]) -> bool:
    return auth is not None and auth.can(Resource.PRODUCTS, Action.EDIT)


@router.get("", response_model=Envelope[Page[ProductOut]])
def list_products(
    category: str | None = None,
    search: str | None = Query(default=None, max_length=100),
    is_active: bool | None = True,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    tenant: TenantContext = Depends(require_tenant),
    auth: Optional[AuthContext] = Depends(optional_auth),
    db: Session = Depends(get_db),
):
    # the public catalog only ever shows active products
    if not _sees_inactive(auth):
        is_active = True
    products, total = product_service.list_products(
        db, tenant.tenant_id, is_active=is_active, category=category, search=search, page=page, limit=limit,
    )
    return ok(paginate([ProductOut.model_validate(p) for p in products], total, page, limit))


@router.get("/{product_id}", response_model=Envelope[ProductOut])
def get_product(
    product_id: int,
    tenant: TenantContext = Depends(require_tenant),
    auth: Optional[AuthContext] = Depends(optional_auth),
    db: Session = Depends(get_db),
):
    product = product_service.get_product(db, tenant.tenant_id, product_id)
    if not product.is_active and not _sees_inactive(auth):
        raise ProductNotFound()
    return ok(ProductOut.model_validate(product))


@router.post("", response_model=Envelope[ProductOut], status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    auth: AuthContext = Depends(require_permission(Resource.PRODUCTS, Action.CREATE)),
    db: Session = Depends(get_db),
):
    product = product_service.create_product(db, auth.tenant_id, payload)
    return ok(ProductOut.model_validate(product), "Product created", status.HTTP_201_CREATED)


@router.put("/{product_id}", response_model=Envelope[ProductOut])
@router.patch("/{product_id}", response_model=Envelope[ProductOut])
def update_product(
    product_id: int,
    payload: ProductUpdate,
    auth: AuthContext = Depends(require_permission(Resource.PRODUCTS, Action.EDIT)),
    db: Session = Depends(get_db),
):
    product = product_service.update_product(db, auth.tenant_id, product_id, payload)
    return ok(ProductOut.model_validate(product), "Product updated")


@router.patch("/{product_id}/stock", response_model=Envelope[ProductOut])
def adjust_stock(
    product_id: int,
    payload: StockAdjust,
    auth: AuthContext = Depends(require_permission(Resource.PRODUCTS, Action.MANAGE_STOCK)),
    db: Session = Depends(get_db),
):
    product = product_service.adjust_stock(db, auth.tenant_id, product_id, payload.delta)
    return ok(ProductOut.model_validate(product), "Stock updated")


@router.delete("/{product_id}", response_model=Envelope[ProductOut])
def deactivate_product(
    product_id: int,
    auth: AuthContext = Depends(require_permission(Resource.PRODUCTS, Action.DELETE)),
    db: Session = Depends(get_db),
):
    product = product_service.deactivate_product(db, auth.tenant_id, product_id)
    return ok(ProductOut.model_validate(product), "Product deactivated")


@router.delete("/{product_id}/permanent", response_model=Envelope[None])
def purge_product(
    product_id: int,
    auth: AuthContext = Depends(require_permission(Resource.PRODUCTS, Action.DELETE)),
    db: Session = Depends(get_db),
):
    product_service.purge_product(db, auth.tenant_id, product_id)
    return ok(None, "Product permanently deleted")
