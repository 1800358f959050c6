import logging

from sqlalchemy.orm import Session

from storefront.core.errors import DuplicateKeyError, Forbidden, InternalError, Unauthorized, ValidationError
from storefront.core.permissions import DEFAULT_REGISTRATION_ROLE
from storefront.core.security import hash_password, verify_password
from storefront.db import utcnow
from storefront.models.role import Role
from storefront.models.user import User
from storefront.schemas.user import ProfileUpdate, RegisterIn, UserCreate, UserUpdate
from storefront.services.role_service import get_role_by_slug
from storefront.tenancy.queries import get_owned, require_owned, scoped_count, scoped_select

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def get_user_by_email(db: Session, tenant_id: int, email: str) -> User | None:
    return db.scalar(scoped_select(User, tenant_id, email=email.strip().lower()))


def _new_user(db: Session, tenant_id: int, payload: RegisterIn, role: Role) -> User:
    if get_user_by_email(db, tenant_id, payload.email) is not None:
        raise DuplicateKeyError("Email is already registered")

    user = User(
        tenant_id=tenant_id,
        role_id=role.id,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        phone=payload.phone,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User created: tenant=%s user=%s role=%s", tenant_id, user.id, role.slug)
    return user


def register_user(db: Session, tenant_id: int, payload: RegisterIn, role_slug: str = DEFAULT_REGISTRATION_ROLE) -> User:
    role = get_role_by_slug(db, tenant_id, role_slug)
    if role is None:
        # every tenant gets its system roles on creation
        raise InternalError(f"Role '{role_slug}' missing for tenant {tenant_id}")
    return _new_user(db, tenant_id, payload, role)


def _role_in_tenant(db: Session, tenant_id: int, role_id: int) -> Role:
    role = get_owned(db, Role, tenant_id, role_id)
    if role is None:
        raise ValidationError("Role does not belong to this store")
    if not role.is_active:
        raise ValidationError("Role is not active")
    return role


def create_user(db: Session, tenant_id: int, payload: UserCreate) -> User:
    role = _role_in_tenant(db, tenant_id, payload.role_id)
    return _new_user(db, tenant_id, payload, role)


def authenticate(db: Session, tenant_id: int, email: str, password: str) -> User:
    user = get_user_by_email(db, tenant_id, email)
    # same answer for unknown email and wrong password
    if user is None or not verify_password(password, user.password_hash):
        raise Unauthorized(INVALID_CREDENTIALS)
    if not user.is_active:
        raise Unauthorized("Account is inactive")

    user.last_login = utcnow()
    db.commit()
    db.refresh(user)
    return user


def get_user(db: Session, tenant_id: int, user_id: int) -> User:
    return require_owned(db, User, tenant_id, user_id, "User")


def list_users(
    db: Session,
    tenant_id: int,
    role_id: int | None = None,
    is_active: bool | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[User], int]:
    filters = {}
    if role_id is not None:
        filters["role_id"] = role_id
    if is_active is not None:
        filters["is_active"] = is_active

    total = scoped_count(db, User, tenant_id, **filters)
    stmt = (
        scoped_select(User, tenant_id, **filters)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(db.scalars(stmt).unique()), total


def update_user(db: Session, tenant_id: int, user_id: int, payload: UserUpdate, acting_user_id: int | None = None) -> User:
    user = get_user(db, tenant_id, user_id)
    changes = payload.model_dump(exclude_unset=True)

    if "role_id" in changes and changes["role_id"] is not None:
        _role_in_tenant(db, tenant_id, changes["role_id"])
    if acting_user_id == user.id and changes.get("is_active") is False:
        raise Forbidden("You cannot deactivate your own account")

    for field, value in changes.items():
        if value is None and field in ("role_id", "is_active", "first_name", "last_name"):
            continue
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


def update_profile(db: Session, user: User, payload: ProfileUpdate) -> User:
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field in ("first_name", "last_name"):
            continue
        if field in ("phone", "profile_image"):
            value = value or None
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


def deactivate_user(db: Session, tenant_id: int, user_id: int, acting_user_id: int) -> User:
    user = get_user(db, tenant_id, user_id)
    if user.id == acting_user_id:
        raise Forbidden("You cannot deactivate your own account")
    user.is_active = False
    db.commit()
    db.refresh(user)
    logger.info("User deactivated: tenant=%s user=%s by=%s", tenant_id, user.id, acting_user_id)
    return user
