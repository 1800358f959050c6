import pytest

from storefront.core.errors import DuplicateKeyError
from storefront.models.product import Product
from storefront.models.tenant import Tenant
from storefront.models.user import User
from storefront.schemas.tenant import TenantCreate
from storefront.services import role_service, tenant_service

from conftest import auth_headers, make_product, make_tenant, make_user

NEW_TENANT = {"name": "Pastelería Dulce Día", "contact_email": "Hola@DulceDia.mx"}


class TestTenantRegistry:
    def test_create_via_api(self, client, db):
        resp = client.post("/tenants", json=NEW_TENANT)
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["slug"] == "pasteleria-dulce-dia"
        assert data["status"] == "trial"
        assert data["contact_email"] == "hola@dulcedia.mx"

        roles = role_service.list_roles(db, data["id"])
        assert sorted(r.slug for r in roles) == ["admin", "customer", "seller"]
        assert all(r.is_system for r in roles)

    def test_duplicate_slug_and_domain(self, db):
        make_tenant(db, "dulce", domain="dulce.mx")
        with pytest.raises(DuplicateKeyError):
            tenant_service.create_tenant(db, TenantCreate(name="Otra", slug="dulce", contact_email="a@b.mx"))
        with pytest.raises(DuplicateKeyError):
            tenant_service.create_tenant(db, TenantCreate(name="Otra", domain="Dulce.MX", contact_email="a@b.mx"))

    def test_duplicate_over_http_is_409(self, client):
        assert client.post("/tenants", json=NEW_TENANT).status_code == 201
        assert client.post("/tenants", json=NEW_TENANT).status_code == 409

    def test_public_lookup(self, client, shop):
        resp = client.get("/tenants/dulce")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["id"] == shop.id
        assert "contact_email" not in data
        assert client.get(f"/tenants/{shop.id}").json()["data"]["slug"] == "dulce"
        assert client.get("/tenants/ghost").status_code == 404


class TestTenantManagement:
    def test_update_own_tenant(self, client, admin, shop):
        resp = client.put(f"/tenants/{shop.id}", json={"name": "Dulce Centro", "domain": "Dulce.MX"}, headers=auth_headers(admin))
        assert resp.status_code == 200
        assert resp.json()["data"]["name"] == "Dulce Centro"
        assert resp.json()["data"]["domain"] == "dulce.mx"

    def test_other_tenant_is_forbidden(self, client, admin, other_shop):
        headers = auth_headers(admin)
        assert client.put(f"/tenants/{other_shop.id}", json={"name": "Mia"}, headers=headers).status_code == 403
        assert client.get(f"/tenants/{other_shop.id}/stats", headers=headers).status_code == 403
        assert client.delete(f"/tenants/{other_shop.id}/permanent", headers=headers).status_code == 403

    def test_customer_cannot_edit(self, client, customer, shop):
        assert client.put(f"/tenants/{shop.id}", json={"name": "Mia"}, headers=auth_headers(customer)).status_code == 403

    def test_status_and_soft_delete(self, client, db, admin, shop):
        headers = auth_headers(admin)
        resp = client.patch(f"/tenants/{shop.id}/status", json={"status": "active"}, headers=headers)
        assert resp.status_code == 200
        assert client.patch(f"/tenants/{shop.id}/status", json={"status": "closed"}, headers=headers).status_code == 400

        resp = client.delete(f"/tenants/{shop.id}", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "inactive"
        # the store no longer resolves
        assert client.get("/auth/me", headers=headers).status_code == 403

    def test_stats(self, client, db, admin, customer, shop):
        make_product(db, shop, price_cents=1000, stock=5)
        customer.is_active = False
        db.commit()

        data = client.get(f"/tenants/{shop.id}/stats", headers=auth_headers(admin)).json()["data"]
        assert data["users_total"] == 2
        assert data["users_active"] == 1
        assert data["users_inactive"] == 1
        assert data["roles"] == 3
        assert data["products"] == 1
        assert data["orders"] == 0
        assert data["revenue_cents"] == 0

    def test_purge(self, client, db, admin, shop, other_shop):
        shop_id, admin_id, other_id = shop.id, admin.id, other_shop.id
        make_product(db, shop)
        keep_id = make_product(db, other_shop).id
        resp = client.delete(f"/tenants/{shop_id}/permanent", headers=auth_headers(admin))
        assert resp.status_code == 200

        db.expunge_all()
        assert db.get(Tenant, shop_id) is None
        assert db.get(User, admin_id) is None
        assert db.get(Product, keep_id) is not None
        assert role_service.list_roles(db, other_id)


class TestRoles:
    def test_system_roles_are_protected(self, client, db, admin, shop):
        headers = auth_headers(admin)
        customer_role = role_service.get_role_by_slug(db, shop.id, "customer")

        assert client.delete(f"/roles/{customer_role.id}", headers=headers).status_code == 403
        resp = client.put(f"/roles/{customer_role.id}", json={"permissions": ["users:view"]}, headers=headers)
        assert resp.status_code == 403
        resp = client.put(f"/roles/{customer_role.id}", json={"description": "Clientes"}, headers=headers)
        assert resp.status_code == 200

    def test_custom_role_lifecycle(self, client, db, admin, shop):
        headers = auth_headers(admin)
        resp = client.post(
            "/roles",
            json={"name": "Repostero", "permissions": ["products:view", "products:manageStock"], "priority": 30},
            headers=headers,
        )
        assert resp.status_code == 201
        role = resp.json()["data"]
        assert role["slug"] == "repostero"
        assert role["is_system"] is False

        assert client.post("/roles", json={"name": "Repostero"}, headers=headers).status_code == 409

        resp = client.put(f"/roles/{role['id']}", json={"permissions": ["products:view"]}, headers=headers)
        assert resp.json()["data"]["permissions"] == ["products:view"]

        assert client.delete(f"/roles/{role['id']}", headers=headers).status_code == 200

    def test_unknown_permission_rejected(self, client, admin):
        resp = client.post("/roles", json={"name": "Raro", "permissions": ["orders:refund"]}, headers=auth_headers(admin))
        assert resp.status_code == 400

    def test_role_in_use_cannot_be_deleted(self, client, db, admin, shop):
        headers = auth_headers(admin)
        role_id = client.post("/roles", json={"name": "Cajero", "permissions": ["orders:view"]}, headers=headers).json()["data"]["id"]
        resp = client.post(
            "/users",
            json={"first_name": "Caja", "last_name": "Uno", "email": "caja@dulce.mx", "password": "Secret123", "role_id": role_id},
            headers=headers,
        )
        assert resp.status_code == 201
        assert client.delete(f"/roles/{role_id}", headers=headers).status_code == 400

    def test_cannot_assign_foreign_role(self, client, db, admin, other_shop):
        foreign_role = role_service.get_role_by_slug(db, other_shop.id, "admin")
        resp = client.post(
            "/users",
            json={"first_name": "Caja", "last_name": "Uno", "email": "caja@dulce.mx", "password": "Secret123", "role_id": foreign_role.id},
            headers=auth_headers(admin),
        )
        assert resp.status_code == 400


class TestUsers:
    def test_admin_lists_and_filters(self, client, db, admin, customer, shop):
        customer_role = role_service.get_role_by_slug(db, shop.id, "customer")
        data = client.get("/users", params={"role_id": customer_role.id}, headers=auth_headers(admin)).json()["data"]
        assert [u["id"] for u in data["items"]] == [customer.id]

    def test_profile(self, client, customer):
        headers = auth_headers(customer)
        assert client.get("/users/profile", headers=headers).json()["data"]["id"] == customer.id
        resp = client.put("/users/profile", json={"first_name": "Anita", "phone": "+525512345678"}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["full_name"] == "Anita Lopez"
        assert client.put("/users/profile", json={"role_id": 1}, headers=headers).status_code == 400

    def test_deactivate(self, client, db, admin, customer):
        headers = auth_headers(admin)
        resp = client.delete(f"/users/{customer.id}", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["is_active"] is False
        assert client.delete(f"/users/{admin.id}", headers=headers).status_code == 403

    def test_foreign_user_is_404(self, client, db, admin, other_shop):
        stranger = make_user(db, other_shop)
        assert client.get(f"/users/{stranger.id}", headers=auth_headers(admin)).status_code == 404
