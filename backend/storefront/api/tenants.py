import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from storefront.auth.deps import AuthContext, require_permission
from storefront.core.errors import Forbidden, TenantNotFound
from storefront.core.permissions import Action, Resource
from storefront.db import get_db
from storefront.models.tenant import Tenant
from storefront.schemas.common import Envelope, ok
from storefront.schemas.tenant import TenantCreate, TenantOut, TenantPublicOut, TenantStats, TenantStatusUpdate, TenantUpdate
from storefront.services import tenant_service

router = APIRouter(prefix="/tenants", tags=["tenants"])

logger = logging.getLogger(__name__)


def _own_tenant(db: Session, auth: AuthContext, tenant_id: int) -> Tenant:
    # management is limited to the caller's own store
    if tenant_id != auth.tenant_id:
        logger.warning("Cross-tenant management attempt: user=%s tenant=%s target=%s", auth.user_id, auth.tenant_id, tenant_id)
        raise Forbidden("You can only manage your own store")
    tenant = db.get(Tenant, tenant_id)
    if tenant is None:
        raise TenantNotFound()
    return tenant


@router.post("", response_model=Envelope[TenantOut], status_code=status.HTTP_201_CREATED)
def create_tenant(payload: TenantCreate, db: Session = Depends(get_db)):
    tenant = tenant_service.create_tenant(db, payload)
    return ok(TenantOut.model_validate(tenant), "Store created", status.HTTP_201_CREATED)


@router.get("/{identifier}", response_model=Envelope[TenantPublicOut])
def get_tenant(identifier: str, db: Session = Depends(get_db)):
    tenant = tenant_service.find_tenant(db, identifier)
    if tenant is None:
        raise TenantNotFound()
    return ok(TenantPublicOut.model_validate(tenant))


@router.put("/{tenant_id}", response_model=Envelope[TenantOut])
def update_tenant(
    tenant_id: int,
    payload: TenantUpdate,
    auth: AuthContext = Depends(require_permission(Resource.TENANT, Action.EDIT)),
    db: Session = Depends(get_db),
):
    tenant = tenant_service.update_tenant(db, _own_tenant(db, auth, tenant_id), payload)
    return ok(TenantOut.model_validate(tenant), "Store updated")


@router.patch("/{tenant_id}/status", response_model=Envelope[TenantOut])
def set_status(
    tenant_id: int,
    payload: TenantStatusUpdate,
    auth: AuthContext = Depends(require_permission(Resource.TENANT, Action.EDIT)),
    db: Session = Depends(get_db),
):
    tenant = tenant_service.set_status(db, _own_tenant(db, auth, tenant_id), payload.status)
    return ok(TenantOut.model_validate(tenant), "Store status updated")


@router.get("/{tenant_id}/stats", response_model=Envelope[TenantStats])
def stats(
    tenant_id: int,
    auth: AuthContext = Depends(require_permission(Resource.TENANT, Action.VIEW)),
    db: Session = Depends(get_db),
):
    data = tenant_service.tenant_stats(db, _own_tenant(db, auth, tenant_id))
    data["tenant"] = TenantPublicOut.model_validate(data["tenant"])
    return ok(TenantStats(**data))


@router.delete("/{tenant_id}", response_model=Envelope[TenantOut])
def deactivate_tenant(
    tenant_id: int,
    auth: AuthContext = Depends(require_permission(Resource.TENANT, Action.EDIT)),
    db: Session = Depends(get_db),
):
    tenant = tenant_service.deactivate_tenant(db, _own_tenant(db, auth, tenant_id))
    return ok(TenantOut.model_validate(tenant), "Store deactivated")


@router.delete("/{tenant_id}/permanent", response_model=Envelope[None])
def purge_tenant(
    tenant_id: int,
    auth: AuthContext = Depends(require_permission(Resource.TENANT, Action.EDIT)),
    db: Session = Depends(get_db),
):
    tenant_service.purge_tenant(db, _own_tenant(db, auth, tenant_id))
    return ok(None, "Store permanently deleted")
