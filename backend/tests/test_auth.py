from storefront.core.security import create_access_token, decode_token
from storefront.models.user import User
from storefront.services.role_service import get_role_by_slug

from conftest import PASSWORD, auth_headers, make_tenant, make_user

REGISTER = {"first_name": "Maria", "last_name": "Garcia", "email": "Maria@Mail.MX", "password": PASSWORD}


def _register(client, slug: str, **overrides):
    return client.post("/auth/register", json={**REGISTER, **overrides}, headers={"x-tenant-id": slug})


class TestRegister:
    def test_register_returns_user_and_token(self, client, shop):
        resp = _register(client, "dulce")
        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["statusCode"] == 201
        assert body["user"]["email"] == "maria@mail.mx"
        assert body["user"]["tenant_id"] == shop.id
        assert "password_hash" not in body["user"]
        assert "password" not in body["user"]

        claims = decode_token(body["token"])
        assert claims["tenant_id"] == str(shop.id)
        assert claims["sub"] == str(body["user"]["id"])

    def test_new_users_get_the_customer_role(self, client, db, shop):
        user_id = _register(client, "dulce").json()["user"]["id"]
        user = db.get(User, user_id)
        assert user.role.slug == "customer"

    def test_duplicate_email_same_tenant_is_409(self, client, shop):
        assert _register(client, "dulce").status_code == 201
        resp = _register(client, "dulce", email="maria@mail.mx")
        assert resp.status_code == 409
        assert resp.json()["error"] is True

    def test_same_email_in_two_tenants(self, client, shop, other_shop):
        assert _register(client, "dulce").status_code == 201
        assert _register(client, "otra").status_code == 201

    def test_weak_password_is_400(self, client, shop):
        resp = _register(client, "dulce", password="alllowercase1")
        assert resp.status_code == 400
        assert any(d["field"] == "password" for d in resp.json()["details"])

    def test_bad_email_is_400(self, client, shop):
        assert _register(client, "dulce", email="not-an-email").status_code == 400


class TestLogin:
    def test_login_ok(self, client, db, shop):
        user = make_user(db, shop, email="ana@dulce.mx")
        resp = client.post("/auth/login", json={"email": "ANA@dulce.mx", "password": PASSWORD}, headers={"x-tenant-id": "dulce"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["user"]["id"] == user.id
        assert body["user"]["last_login"] is not None
        assert body["token"]

    def test_wrong_password_and_unknown_email_look_the_same(self, client, db, shop):
        make_user(db, shop, email="ana@dulce.mx")
        wrong = client.post("/auth/login", json={"email": "ana@dulce.mx", "password": "Nope12345"}, headers={"x-tenant-id": "dulce"})
        unknown = client.post("/auth/login", json={"email": "who@dulce.mx", "password": PASSWORD}, headers={"x-tenant-id": "dulce"})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json()["message"] == unknown.json()["message"] == "Invalid credentials"

    def test_user_of_another_tenant_cannot_login_here(self, client, db, shop, other_shop):
        make_user(db, other_shop, email="ana@otra.mx")
        resp = client.post("/auth/login", json={"email": "ana@otra.mx", "password": PASSWORD}, headers={"x-tenant-id": "dulce"})
        assert resp.status_code == 401

    def test_inactive_user(self, client, db, shop):
        user = make_user(db, shop, email="ana@dulce.mx")
        user.is_active = False
        db.commit()
        resp = client.post("/auth/login", json={"email": "ana@dulce.mx", "password": PASSWORD}, headers={"x-tenant-id": "dulce"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Account is inactive"


class TestAuthGate:
    def test_me(self, client, customer):
        resp = client.get("/auth/me", headers=auth_headers(customer))
        assert resp.status_code == 200
        assert resp.json()["data"]["id"] == customer.id

    def test_missing_token(self, client, shop):
        resp = client.get("/auth/me", headers={"x-tenant-id": "dulce"})
        assert resp.status_code == 401
        assert resp.headers.get("www-authenticate") == "Bearer"

    def test_expired_token(self, client, db, customer):
        token = create_access_token(customer.id, customer.tenant_id, customer.role_id, customer.email, ttl_minutes=-5)
        resp = client.get("/auth/me", headers={"Authorization": f"Bearer {token}", "x-tenant-id": "dulce"})
        assert resp.status_code == 401

    def test_deleted_user_token(self, client, db, customer):
        headers = auth_headers(customer)
        db.delete(customer)
        db.commit()
        resp = client.get("/auth/me", headers=headers)
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid or expired token"

    def test_deactivated_user_token(self, client, db, customer):
        headers = auth_headers(customer)
        customer.is_active = False
        db.commit()
        resp = client.get("/auth/me", headers=headers)
        assert resp.status_code == 401
        assert resp.json()["message"] == "Account is inactive"

    def test_role_change_applies_immediately(self, client, db, shop, customer):
        headers = auth_headers(customer)
        assert client.get("/users", headers=headers).status_code == 403

        customer.role_id = get_role_by_slug(db, shop.id, "admin").id
        db.commit()
        assert client.get("/users", headers=headers).status_code == 200

    def test_suspended_tenant_blocks_existing_tokens(self, client, db, shop, customer):
        headers = auth_headers(customer)
        shop.status = "suspended"
        db.commit()
        assert client.get("/auth/me", headers=headers).status_code == 403

    def test_logout(self, client, customer):
        resp = client.post("/auth/logout", headers=auth_headers(customer))
        assert resp.status_code == 200
        assert resp.json()["success"] is True


def test_trial_tenant_accepts_registration(client, db):
    make_tenant(db, "nueva", status="trial")
    assert _register(client, "nueva").status_code == 201
