"""
Shared pytest fixtures.

The server settings are read at import time, so the environment is set
before anything from lockbox is imported. The PostgreSQL store is replaced
by an in-memory one through FastAPI's dependency overrides; startup events
(which would connect to the database) are not run because TestClient is
not used as a context manager.
"""

import os
import tempfile
from datetime import datetime, timezone
from itertools import count

_TMP = tempfile.mkdtemp(prefix="lockbox-tests-")
os.environ.setdefault("POSTGRES_DB", "lockbox_test")
os.environ.setdefault("POSTGRES_USER", "postgres")
os.environ.setdefault("POSTGRES_PASSWORD", "postgres")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_PORT", "5432")
os.environ.setdefault("JWT_SECRET_KEY", "0" * 64)
os.environ.setdefault("LOG_DIR", os.path.join(_TMP, "logs"))
os.environ.setdefault("LOCKBOX_STATE_DIR", os.path.join(_TMP, "state"))

import pytest
from fastapi.testclient import TestClient

from lockbox.models.records import UserRecord, VaultRecord


class InMemoryVaultStore:
    """Same interface as lockbox.db.vault_store.VaultStore, backed by dicts."""

    def __init__(self):
        self.users = {}
        self.vaults = {}
        self._ids = count(1)

    async def create_user(self, email, password_hash):
        if any(user.email == email for user in self.users.values()):
            return None
        user = UserRecord(
            id=next(self._ids),
            email=email,
            password_hash=password_hash,
            created_at=datetime.now(timezone.utc),
        )
        self.users[user.id] = user
        return user

    async def get_user_by_email(self, email):
        for user in self.users.values():
            if user.email == email:
                return user
        return None

    async def get_user_by_id(self, user_id):
        return self.users.get(user_id)

    async def get_vault(self, user_id):
        return self.vaults.get(user_id)

    async def save_vault(self, user_id, master_hash, encrypted_data):
        vault = VaultRecord(user_id, master_hash, encrypted_data, datetime.now(timezone.utc))
        self.vaults[user_id] = vault
        return vault

    async def update_master(self, user_id, master_hash, encrypted_data=None, replace_data=False):
        existing = self.vaults.get(user_id)
        if existing and not replace_data:
            encrypted_data = existing.encrypted_data
        return await self.save_vault(user_id, master_hash, encrypted_data)

    async def delete_vault(self, user_id):
        return self.vaults.pop(user_id, None) is not None


@pytest.fixture(autouse=True)
def _reset_rate_limiters():
    from lockbox.api.rate_limit import api_limiter, auth_limiter

    api_limiter.reset()
    auth_limiter.reset()
    yield
    api_limiter.reset()
    auth_limiter.reset()


@pytest.fixture
def store():
    return InMemoryVaultStore()


@pytest.fixture
def client(store):
    """FastAPI test client with the in-memory store injected."""
    from lockbox.main import app
    from lockbox.db.vault_store import get_vault_store

    app.dependency_overrides[get_vault_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.pop(get_vault_store, None)


@pytest.fixture
def register_user(client):
    def _register(email="user@example.com", password="TestPass123!"):
        response = client.post("/api/auth/register", json={"email": email, "password": password})
        assert response.status_code == 201, response.text
        return response.json()
    return _register


@pytest.fixture
def token(register_user):
    return register_user()["token"]


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


class _ResponseAdapter:
    """Gives an httpx response the requests attributes the api client reads."""

    def __init__(self, response):
        self._response = response
        self.status_code = response.status_code
        self.ok = response.is_success

    def json(self):
        return self._response.json()


class AppTransport:
    """requests.Session stand-in that routes calls into the ASGI app."""

    def __init__(self, test_client):
        self.test_client = test_client
        self.calls = []

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.calls.append((method, url))
        return _ResponseAdapter(self.test_client.request(method, url, json=json, headers=headers))


@pytest.fixture
def api(client):
    """VaultApiClient wired to the in-process app, already registered."""
    from lockbox_client.api_client import VaultApiClient

    api = VaultApiClient(base_url="http://testserver/api", http=AppTransport(client))
    api.register("owner@example.com", "TestPass123!")
    return api
