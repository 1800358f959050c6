import pytest
from sqlalchemy import select

from storefront.core.errors import InsufficientStock, ProductNotFound
from storefront.models.cart import CartItem
from storefront.models.product import Product
from storefront.services import product_service
from storefront.tenancy.queries import scoped_select

from conftest import auth_headers, make_product

NEW_PRODUCT = {"name": "Pastel Tres Leches", "price_cents": 32000, "stock": 5, "category": "pasteles"}


class TestProductPermissions:
    def test_customer_cannot_create(self, client, db, customer):
        resp = client.post("/products", json=NEW_PRODUCT, headers=auth_headers(customer))
        assert resp.status_code == 403
        assert db.scalar(scoped_select(Product, customer.tenant_id)) is None

    def test_admin_creates_in_own_tenant(self, client, admin, shop):
        resp = client.post("/products", json=NEW_PRODUCT, headers=auth_headers(admin))
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["tenant_id"] == shop.id
        assert data["slug"] == "pastel-tres-leches"
        assert data["is_active"] is True

    def test_seller_can_edit_but_not_delete(self, client, db, seller, shop):
        product = make_product(db, shop)
        headers = auth_headers(seller)
        assert client.patch(f"/products/{product.id}", json={"price_cents": 26000}, headers=headers).status_code == 200
        assert client.delete(f"/products/{product.id}", headers=headers).status_code == 403

    def test_anonymous_can_browse_active_catalog(self, client, db, shop):
        visible = make_product(db, shop, name="Concha")
        hidden = make_product(db, shop, name="Rosca")
        hidden.is_active = False
        db.commit()
        headers = {"x-tenant-id": "dulce"}

        resp = client.get("/products", headers=headers)
        assert resp.status_code == 200
        assert [p["id"] for p in resp.json()["data"]["items"]] == [visible.id]
        # asking for inactive products does not widen an anonymous listing
        listed = client.get("/products", params={"is_active": False}, headers=headers).json()["data"]["items"]
        assert [p["id"] for p in listed] == [visible.id]

        assert client.get(f"/products/{visible.id}", headers=headers).status_code == 200
        assert client.get(f"/products/{hidden.id}", headers=headers).status_code == 404

    def test_anonymous_needs_a_tenant(self, client, shop):
        assert client.get("/products").status_code == 400

    def test_duplicate_slug_is_409(self, client, admin):
        headers = auth_headers(admin)
        assert client.post("/products", json=NEW_PRODUCT, headers=headers).status_code == 201
        assert client.post("/products", json=NEW_PRODUCT, headers=headers).status_code == 409


class TestProductCrud:
    def test_update_rejects_stock(self, client, db, admin, shop):
        product = make_product(db, shop)
        resp = client.put(f"/products/{product.id}", json={"stock": 999}, headers=auth_headers(admin))
        # stock is not an editable field
        assert resp.status_code == 400

    def test_soft_delete_hides_from_default_listing(self, client, db, admin, shop):
        product = make_product(db, shop)
        headers = auth_headers(admin)
        resp = client.delete(f"/products/{product.id}", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["is_active"] is False

        listed = client.get("/products", headers=headers).json()["data"]
        assert listed["pagination"]["total"] == 0
        inactive = client.get("/products", params={"is_active": False}, headers=headers).json()["data"]
        assert [p["id"] for p in inactive["items"]] == [product.id]

    def test_permanent_delete(self, client, db, admin, shop):
        product_id = make_product(db, shop).id
        resp = client.delete(f"/products/{product_id}/permanent", headers=auth_headers(admin))
        assert resp.status_code == 200
        db.expunge_all()
        assert db.get(Product, product_id) is None

    def test_search_is_literal(self, client, db, customer, shop):
        make_product(db, shop, name="Pastel 100% chocolate")
        make_product(db, shop, name="Pastel de vainilla")
        headers = auth_headers(customer)

        found = client.get("/products", params={"search": "100%"}, headers=headers).json()["data"]["items"]
        assert [p["name"] for p in found] == ["Pastel 100% chocolate"]

        # '.*' and '%' are not patterns
        assert client.get("/products", params={"search": ".*"}, headers=headers).json()["data"]["items"] == []
        assert client.get("/products", params={"search": "%"}, headers=headers).json()["data"]["pagination"]["total"] == 1

    def test_pagination(self, client, db, customer, shop):
        for i in range(5):
            make_product(db, shop, name=f"Galleta {i}")
        data = client.get("/products", params={"page": 2, "limit": 2}, headers=auth_headers(customer)).json()["data"]
        assert len(data["items"]) == 2
        assert data["pagination"] == {"total": 5, "page": 2, "limit": 2, "pages": 3}


class TestStock:
    def test_adjust_stock_endpoint(self, client, db, seller, shop):
        product = make_product(db, shop, stock=4)
        resp = client.patch(f"/products/{product.id}/stock", json={"delta": 6}, headers=auth_headers(seller))
        assert resp.status_code == 200
        assert resp.json()["data"]["stock"] == 10

    def test_insufficient_stock_leaves_stock_unchanged(self, client, db, admin, shop):
        product = make_product(db, shop, stock=3)
        resp = client.patch(f"/products/{product.id}/stock", json={"delta": -4}, headers=auth_headers(admin))
        assert resp.status_code == 400
        db.expire_all()
        assert db.get(Product, product.id).stock == 3

    def test_service_level(self, db, shop, other_shop):
        product = make_product(db, shop, stock=2)
        assert product_service.adjust_stock(db, shop.id, product.id, -2).stock == 0
        with pytest.raises(InsufficientStock):
            product_service.adjust_stock(db, shop.id, product.id, -1)
        with pytest.raises(ProductNotFound):
            product_service.adjust_stock(db, other_shop.id, product.id, 1)
        db.expire_all()
        assert db.get(Product, product.id).stock == 0

    def test_customer_cannot_manage_stock(self, client, db, customer, shop):
        product = make_product(db, shop)
        resp = client.patch(f"/products/{product.id}/stock", json={"delta": 100}, headers=auth_headers(customer))
        assert resp.status_code == 403


def test_purge_removes_cart_lines(db, shop, customer):
    from storefront.services import cart_service

    product = make_product(db, shop)
    cart_service.add_item(db, shop.id, customer.id, product.id, 2)
    product_service.purge_product(db, shop.id, product.id)
    assert db.scalar(select(CartItem).where(CartItem.product_id == product.id)) is None


def test_category_and_tags_are_lower_cased(client, db, customer, shop):
    product = make_product(db, shop, category="  Pasteles ", tags=["Chocolate", " SIN-GLUTEN "])
    assert product.category == "pasteles"
    assert product.tags == ["chocolate", "sin-gluten"]

    headers = auth_headers(customer)
    for category in ("pasteles", "PASTELES"):
        items = client.get("/products", params={"category": category}, headers=headers).json()["data"]["items"]
        assert [p["id"] for p in items] == [product.id]


def test_update_lower_cases_category(client, db, admin, shop):
    product = make_product(db, shop)
    resp = client.patch(f"/products/{product.id}", json={"category": "Galletas", "tags": ["Temporada"]}, headers=auth_headers(admin))
    assert resp.json()["data"]["category"] == "galletas"
    assert resp.json()["data"]["tags"] == ["temporada"]
