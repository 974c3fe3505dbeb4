"""
HTTP client for the Lockbox API.

Only opaque values (master hash, encrypted blob) and login credentials
cross this boundary; the master password and decrypted entries never do.
"""
from typing import Optional

import requests

from lockbox_client.config import client_settings
from lockbox_client.errors import ApiError, AuthFailure, InputError, TransportFailure
from lockbox_client.logging_setup import get_logger

logger = get_logger(__name__)

MIN_ACCOUNT_PASSWORD_LENGTH = 6

_UNSET = object()


class VaultApiClient:
    """Client for one account"""

    def __init__(self, base_url: str = None, timeout: float = None,
                 http: Optional[requests.Session] = None):
        self.base_url = (base_url or client_settings.API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else client_settings.REQUEST_TIMEOUT
        self.http = http or requests.Session()
        self.token: Optional[str] = None

    def is_logged_in(self) -> bool:
        return bool(self.token)

    def get_headers(self) -> dict:
        """Get authorization headers"""
        if not self.token:
            raise AuthFailure("Not logged in")
        return {"Authorization": f"Bearer {self.token}"}

    def _request(self, method: str, endpoint: str, json: dict = None, auth: bool = True) -> dict:
        url = f"{self.base_url}{endpoint}"
        headers = self.get_headers() if auth else {}

        try:
            response = self.http.request(method, url, json=json, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"{method} {endpoint} failed: {type(e).__name__}")
            raise TransportFailure() from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.ok:
            return data

        detail = data.get("detail") if isinstance(data, dict) else None
        if not isinstance(detail, str):
            detail = None

        if response.status_code == 401:
            # Expired or rejected token: drop it so the caller logs in again
            self.token = None
            raise AuthFailure(detail)

        logger.info(f"{method} {endpoint} returned {response.status_code}")
        raise ApiError(detail, status_code=response.status_code)

    # ========== Auth ==========

    def register(self, email: str, password: str) -> dict:
        """Create an account and keep the issued token"""
        if not email or not password:
            raise InputError("Enter an email and a password")
        if len(password) < MIN_ACCOUNT_PASSWORD_LENGTH:
            raise InputError(f"Password must be at least {MIN_ACCOUNT_PASSWORD_LENGTH} characters")

        data = self._request("POST", "/auth/register",
                             json={"email": email, "password": password}, auth=False)
        self.token = data["token"]
        return data

    def login(self, email: str, password: str) -> dict:
        """Log in and keep the issued token"""
        if not email or not password:
            raise InputError("Enter an email and a password")

        data = self._request("POST", "/auth/login",
                             json={"email": email, "password": password}, auth=False)
        self.token = data["token"]
        return data

    def logout(self) -> None:
        self.token = None

    def me(self) -> dict:
        return self._request("GET", "/auth/me")

    # ========== Vault ==========

    def get_vault(self) -> dict:
        """{"masterHash": ..., "encryptedData": ...}, both None when unset"""
        return self._request("GET", "/vault")

    def save_vault(self, master_hash: str, encrypted_data: Optional[str]) -> dict:
        return self._request("PUT", "/vault",
                             json={"masterHash": master_hash, "encryptedData": encrypted_data})

    def update_master(self, master_hash: str, encrypted_data=_UNSET) -> dict:
        """Rotate the master hash; the blob is only sent when given."""
        body = {"masterHash": master_hash}
        if encrypted_data is not _UNSET:
            body["encryptedData"] = encrypted_data
        return self._request("PUT", "/vault/master", json=body)

    def delete_vault(self) -> dict:
        return self._request("DELETE", "/vault")
