import logging

from sqlalchemy.orm import Session

from storefront.core.errors import DuplicateKeyError, Forbidden, ValidationError
from storefront.core.permissions import SYSTEM_ROLES
from storefront.core.text import slugify
from storefront.models.role import Role
from storefront.models.user import User
from storefront.schemas.role import RoleCreate, RoleUpdate
from storefront.tenancy.queries import require_owned, scoped_count, scoped_select

logger = logging.getLogger(__name__)


def create_default_roles(db: Session, tenant_id: int) -> list[Role]:
    """admin / seller / customer for a new tenant. Caller commits."""
    roles = []
    for slug, name, description, priority, grants in SYSTEM_ROLES:
        role = Role(
            tenant_id=tenant_id,
            name=name,
            slug=slug,
            description=description,
            permissions=sorted(grants),
            priority=priority,
            is_system=True,
            is_active=True,
        )
        db.add(role)
        roles.append(role)
    db.flush()
    return roles


def get_role_by_slug(db: Session, tenant_id: int, slug: str) -> Role | None:
    return db.scalar(scoped_select(Role, tenant_id, slug=slug))


def list_roles(db: Session, tenant_id: int, include_inactive: bool = True) -> list[Role]:
    stmt = scoped_select(Role, tenant_id)
    if not include_inactive:
        stmt = stmt.where(Role.is_active.is_(True))
    return list(db.scalars(stmt.order_by(Role.priority.desc(), Role.id)))


def get_role(db: Session, tenant_id: int, role_id: int) -> Role:
    return require_owned(db, Role, tenant_id, role_id, "Role")


def create_role(db: Session, tenant_id: int, payload: RoleCreate) -> Role:
    slug = payload.slug or slugify(payload.name)
    if not slug:
        raise ValidationError("Role slug cannot be empty")
    if get_role_by_slug(db, tenant_id, slug) is not None:
        raise DuplicateKeyError(f"Role '{slug}' already exists")

    role = Role(
        tenant_id=tenant_id,
        name=payload.name,
        slug=slug,
        description=payload.description,
        permissions=list(payload.permissions),
        priority=payload.priority,
        is_system=False,
        is_active=True,
    )
    db.add(role)
    db.commit()
    db.refresh(role)
    logger.info("Role created: tenant=%s slug=%s", tenant_id, slug)
    return role


def update_role(db: Session, tenant_id: int, role_id: int, payload: RoleUpdate) -> Role:
    role = get_role(db, tenant_id, role_id)
    changes = payload.model_dump(exclude_unset=True)

    if role.is_system and ("permissions" in changes or changes.get("is_active") is False):
        raise Forbidden("System role permissions cannot be modified")

    for field, value in changes.items():
        setattr(role, field, value)
    db.commit()
    db.refresh(role)
    return role


def delete_role(db: Session, tenant_id: int, role_id: int) -> None:
    role = get_role(db, tenant_id, role_id)
    if role.is_system:
        raise Forbidden("System roles cannot be deleted")
    assigned = scoped_count(db, User, tenant_id, role_id=role.id)
    if assigned:
        raise ValidationError(f"Role is assigned to {assigned} user(s)")
    db.delete(role)
    db.commit()
    logger.info("Role deleted: tenant=%s slug=%s", tenant_id, role.slug)
