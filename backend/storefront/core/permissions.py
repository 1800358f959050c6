"""
Permission matrix.

A role's grant is a set of capability tokens ``"<resource>:<action>"``.
Authorization is one set-membership test: no wildcards, no inheritance,
anything not granted is denied.
"""
from __future__ import annotations

from enum import Enum
from typing import Iterable


class Resource(str, Enum):
    USERS = "users"
    PRODUCTS = "products"
    ORDERS = "orders"
    ROLES = "roles"
    TENANT = "tenant"


class Action(str, Enum):
    VIEW = "view"
    VIEW_ALL = "viewAll"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    CANCEL = "cancel"
    UPDATE_STATUS = "updateStatus"
    MANAGE_STOCK = "manageStock"


MATRIX: dict[Resource, tuple[Action, ...]] = {
    Resource.USERS: (Action.VIEW, Action.CREATE, Action.EDIT, Action.DELETE),
    Resource.PRODUCTS: (Action.VIEW, Action.CREATE, Action.EDIT, Action.DELETE, Action.MANAGE_STOCK),
    Resource.ORDERS: (Action.VIEW, Action.VIEW_ALL, Action.CREATE, Action.EDIT, Action.CANCEL, Action.UPDATE_STATUS),
    Resource.ROLES: (Action.VIEW, Action.CREATE, Action.EDIT, Action.DELETE),
    Resource.TENANT: (Action.VIEW, Action.EDIT),
}


def capability(resource: Resource | str, action: Action | str) -> str:
    r = resource.value if isinstance(resource, Resource) else str(resource)
    a = action.value if isinstance(action, Action) else str(action)
    return f"{r}:{a}"


ALL_CAPABILITIES: frozenset[str] = frozenset(
    capability(resource, action) for resource, actions in MATRIX.items() for action in actions
)


def is_known_capability(token: str) -> bool:
    return token in ALL_CAPABILITIES


def normalize_grants(tokens: Iterable[str] | None) -> frozenset[str]:
    return frozenset(t for t in (tokens or ()) if isinstance(t, str))


def has_permission(grants: Iterable[str] | None, resource: Resource | str, action: Action | str) -> bool:
    if grants is None:
        return False
    if not isinstance(grants, (set, frozenset)):
        grants = normalize_grants(grants)
    return capability(resource, action) in grants


def _grant(table: dict[Resource, Iterable[Action]]) -> frozenset[str]:
    return frozenset(capability(r, a) for r, actions in table.items() for a in actions)


ADMIN_GRANTS = ALL_CAPABILITIES

SELLER_GRANTS = _grant({
    Resource.USERS: (Action.VIEW,),
    Resource.PRODUCTS: (Action.VIEW, Action.CREATE, Action.EDIT, Action.MANAGE_STOCK),
    Resource.ORDERS: (Action.VIEW, Action.VIEW_ALL, Action.CREATE, Action.EDIT, Action.UPDATE_STATUS),
    Resource.ROLES: (Action.VIEW,),
    Resource.TENANT: (Action.VIEW,),
})

CUSTOMER_GRANTS = _grant({
    Resource.PRODUCTS: (Action.VIEW,),
    Resource.ORDERS: (Action.VIEW, Action.CREATE, Action.CANCEL),
})


# (slug, name, description, priority, grants)
SYSTEM_ROLES: tuple[tuple[str, str, str, int, frozenset[str]], ...] = (
    ("admin", "Administrator", "Full access to the store", 100, ADMIN_GRANTS),
    ("seller", "Seller", "Manages products and orders", 50, SELLER_GRANTS),
    ("customer", "Customer", "Basic customer access", 10, CUSTOMER_GRANTS),
)

DEFAULT_REGISTRATION_ROLE = "customer"
