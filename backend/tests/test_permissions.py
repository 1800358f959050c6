from storefront.core.permissions import (
    ADMIN_GRANTS,
    ALL_CAPABILITIES,
    CUSTOMER_GRANTS,
    SELLER_GRANTS,
    SYSTEM_ROLES,
    Action,
    Resource,
    capability,
    has_permission,
    is_known_capability,
)


def test_capability_token_format():
    assert capability(Resource.ORDERS, Action.UPDATE_STATUS) == "orders:updateStatus"
    assert capability("products", "manageStock") == "products:manageStock"


def test_admin_holds_every_capability():
    assert ADMIN_GRANTS == ALL_CAPABILITIES
    assert has_permission(ADMIN_GRANTS, Resource.TENANT, Action.EDIT)


def test_customer_grants():
    assert has_permission(CUSTOMER_GRANTS, Resource.PRODUCTS, Action.VIEW)
    assert has_permission(CUSTOMER_GRANTS, Resource.ORDERS, Action.CREATE)
    assert not has_permission(CUSTOMER_GRANTS, Resource.PRODUCTS, Action.CREATE)
    assert not has_permission(CUSTOMER_GRANTS, Resource.ORDERS, Action.VIEW_ALL)
    assert not has_permission(CUSTOMER_GRANTS, Resource.USERS, Action.VIEW)


def test_seller_cannot_delete_products_or_manage_roles():
    assert has_permission(SELLER_GRANTS, Resource.PRODUCTS, Action.MANAGE_STOCK)
    assert not has_permission(SELLER_GRANTS, Resource.PRODUCTS, Action.DELETE)
    assert not has_permission(SELLER_GRANTS, Resource.ROLES, Action.CREATE)


def test_deny_by_default():
    assert not has_permission(None, Resource.PRODUCTS, Action.VIEW)
    assert not has_permission([], Resource.PRODUCTS, Action.VIEW)
    # unknown resource or action is simply not granted
    assert not has_permission(ADMIN_GRANTS, "invoices", "view")
    assert not has_permission(ADMIN_GRANTS, Resource.TENANT, Action.DELETE)


def test_no_wildcards():
    assert not has_permission(["products:*"], Resource.PRODUCTS, Action.VIEW)
    assert not has_permission(["*"], Resource.PRODUCTS, Action.VIEW)


def test_known_capabilities():
    assert is_known_capability("orders:cancel")
    assert not is_known_capability("orders:refund")
    assert not is_known_capability("tenant:delete")


def test_system_roles_shape():
    slugs = [slug for slug, *_ in SYSTEM_ROLES]
    assert slugs == ["admin", "seller", "customer"]
    priorities = [priority for _, _, _, priority, _ in SYSTEM_ROLES]
    assert priorities == sorted(priorities, reverse=True)
