"""
Tests for /api/auth.

Covers:
- Register returns 201 with a token; duplicate email 409 (also when the insert loses a race); short password 400
- Login 200 with the right password, 401 with a wrong one or unknown email
- /me requires a valid bearer token
- Client address falls back to "unknown" without a peer
"""

from datetime import timedelta
from types import SimpleNamespace

from lockbox.utils.jwt import create_access_token
from lockbox.utils.security_audit import get_client_ip


class TestRegister:
    def test_register_success(self, client):
        response = client.post("/api/auth/register",
                               json={"email": "New@Example.com", "password": "TestPass123!"})
        assert response.status_code == 201
        body = response.json()
        assert body["token"]
        assert body["user"]["email"] == "new@example.com"
        assert "password_hash" not in body["user"]

    def test_duplicate_email(self, client, register_user):
        register_user("dup@example.com")
        response = client.post("/api/auth/register",
                               json={"email": "dup@example.com", "password": "TestPass123!"})
        assert response.status_code == 409

    def test_duplicate_email_lost_race(self, client, register_user, store, monkeypatch):
        register_user("race@example.com")

        async def not_found(email):
            return None

        monkeypatch.setattr(store, "get_user_by_email", not_found)
        response = client.post("/api/auth/register",
                               json={"email": "race@example.com", "password": "TestPass123!"})
        assert response.status_code == 409
        assert len(store.users) == 1

    def test_short_password(self, client):
        response = client.post("/api/auth/register",
                               json={"email": "a@example.com", "password": "12345"})
        assert response.status_code == 400
        assert "at least 6" in response.json()["detail"]

    def test_invalid_email(self, client):
        response = client.post("/api/auth/register",
                               json={"email": "not-an-email", "password": "TestPass123!"})
        assert response.status_code == 400

    def test_account_password_is_hashed(self, client, store, register_user):
        register_user("hash@example.com", "TestPass123!")
        user = next(iter(store.users.values()))
        assert "TestPass123!" not in user.password_hash


class TestLogin:
    def test_login_success(self, client, register_user):
        register_user("login@example.com", "TestPass123!")
        response = client.post("/api/auth/login",
                               json={"email": "login@example.com", "password": "TestPass123!"})
        assert response.status_code == 200
        assert response.json()["token"]

    def test_wrong_password(self, client, register_user, store):
        register_user("login@example.com", "TestPass123!")
        response = client.post("/api/auth/login",
                               json={"email": "login@example.com", "password": "WrongPass999!"})
        assert response.status_code == 401
        assert store.vaults == {}

    def test_unknown_email_same_answer(self, client, register_user):
        register_user("login@example.com", "TestPass123!")
        wrong_pw = client.post("/api/auth/login",
                               json={"email": "login@example.com", "password": "nope-nope"})
        unknown = client.post("/api/auth/login",
                              json={"email": "ghost@example.com", "password": "nope-nope"})
        assert unknown.status_code == 401
        assert unknown.json() == wrong_pw.json()

    def test_missing_fields(self, client):
        response = client.post("/api/auth/login", json={"email": "x@example.com"})
        assert response.status_code == 400


class TestMe:
    def test_me(self, client, auth_headers):
        response = client.get("/api/auth/me", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["email"] == "user@example.com"
        assert body["hasVault"] is False
        assert body["hasMasterPassword"] is False

    def test_me_after_vault_saved(self, client, auth_headers):
        client.put("/api/vault", json={"masterHash": "h", "encryptedData": "d"}, headers=auth_headers)
        body = client.get("/api/auth/me", headers=auth_headers).json()
        assert body["hasVault"] is True
        assert body["hasMasterPassword"] is True

    def test_missing_token(self, client):
        assert client.get("/api/auth/me").status_code == 401

    def test_garbage_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401

    def test_expired_token(self, client, register_user):
        user_id = register_user()["user"]["id"]
        token = create_access_token(user_id, expires_delta=timedelta(seconds=-10))
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert "expired" in response.json()["detail"]

    def test_token_for_deleted_user(self, client, store, register_user):
        body = register_user()
        store.users.clear()
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert response.status_code == 401


def test_client_ip_without_peer():
    assert get_client_ip(SimpleNamespace(client=None)) == "unknown"
    assert get_client_ip(SimpleNamespace(client=SimpleNamespace(host="10.1.2.3"))) == "10.1.2.3"
