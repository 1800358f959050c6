"""
Cross-tenant isolation: one store can never read or touch another store's rows,
whatever ids or headers the caller sends.
"""
import pytest

from storefront.core.errors import InternalError, NotFoundError
from storefront.models.product import Product
from storefront.models.tenant import Tenant
from storefront.tenancy.queries import require_owned, scoped_count, scoped_select, tenant_criteria

from conftest import auth_headers, make_product, make_user


class TestScopedQueries:
    def test_filter_is_always_applied(self, db, shop, other_shop):
        make_product(db, shop, name="Concha")
        make_product(db, other_shop, name="Dona")

        names = [p.name for p in db.scalars(scoped_select(Product, shop.id))]
        assert names == ["Concha"]
        assert scoped_count(db, Product, other_shop.id) == 1

    def test_caller_tenant_filter_cannot_widen_scope(self, db, shop, other_shop):
        make_product(db, other_shop, name="Dona")
        # the scope is positional; a second tenant_id cannot be smuggled in as a filter
        with pytest.raises(TypeError):
            scoped_select(Product, shop.id, tenant_id=other_shop.id)
        with pytest.raises(TypeError):
            scoped_count(db, Product, shop.id, tenant_id=other_shop.id)

    def test_missing_tenant_id_is_an_internal_error(self):
        with pytest.raises(InternalError):
            tenant_criteria(Product, None)

    def test_non_tenant_model_rejected(self):
        with pytest.raises(ValueError):
            scoped_select(Tenant, 1)

    def test_require_owned_hides_foreign_rows(self, db, shop, other_shop):
        foreign = make_product(db, other_shop, name="Dona")
        with pytest.raises(NotFoundError):
            require_owned(db, Product, shop.id, foreign.id, "Product")


class TestHttpIsolation:
    def test_foreign_product_is_404(self, client, db, shop, other_shop):
        foreign = make_product(db, other_shop, name="Dona")
        admin = make_user(db, shop, "admin")

        resp = client.get(f"/products/{foreign.id}", headers=auth_headers(admin))
        assert resp.status_code == 404

        resp = client.put(f"/products/{foreign.id}", json={"price_cents": 1}, headers=auth_headers(admin))
        assert resp.status_code == 404

        resp = client.patch(f"/products/{foreign.id}/stock", json={"delta": -1}, headers=auth_headers(admin))
        assert resp.status_code == 404

        db.expire_all()
        assert db.get(Product, foreign.id).stock == 10
        assert db.get(Product, foreign.id).price_cents == 25000

    def test_listing_only_shows_own_products(self, client, db, shop, other_shop):
        make_product(db, shop, name="Concha")
        make_product(db, other_shop, name="Dona")
        customer = make_user(db, shop)

        resp = client.get("/products", headers=auth_headers(customer))
        assert resp.status_code == 200
        items = resp.json()["data"]["items"]
        assert [p["name"] for p in items] == ["Concha"]
        assert all(p["tenant_id"] == shop.id for p in items)

    def test_token_of_one_tenant_against_another(self, client, db, shop, other_shop):
        admin = make_user(db, shop, "admin")
        # the token decides the tenant; the spoofed header is ignored
        resp = client.get("/users", headers={**auth_headers(admin), "x-tenant-id": other_shop.slug})
        assert resp.status_code == 200
        assert {u["tenant_id"] for u in resp.json()["data"]["items"]} == {shop.id}

    def test_token_used_on_foreign_path_mount(self, client, db, shop, other_shop, monkeypatch):
        from storefront.core.settings import settings

        admin = make_user(db, shop, "admin")
        monkeypatch.setattr(settings, "TENANT_SOURCE", "path")
        resp = client.get(f"/t/{other_shop.slug}/users", headers=auth_headers(admin))
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid or expired token"

    def test_created_product_belongs_to_caller_tenant(self, client, db, shop, other_shop):
        admin = make_user(db, shop, "admin")
        resp = client.post(
            "/products",
            json={"name": "Tres leches", "price_cents": 30000, "stock": 3},
            headers={**auth_headers(admin), "x-tenant-id": other_shop.slug},
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["tenant_id"] == shop.id
