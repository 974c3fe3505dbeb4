# src/lockbox_client/crypto/device_keywrap.py
"""
Device-bound wrapping of the master password for biometric unlock.

The device key is 32 random bytes kept in a local file (mode 0600). It
never leaves the device and is never sent to the server. Losing it only
disables the biometric shortcut; the master password still opens the vault.

A password released by authenticate() is no more trusted than a typed
one: the caller must verify it against the master hash and decrypt with it
as usual.
"""
import base64
import binascii
import json
import os
from pathlib import Path
from typing import Optional, Protocol

from cryptography.exceptions import InvalidTag

from lockbox_client.crypto.aes_utils import NONCE_SIZE, TAG_SIZE, encrypt_aes_gcm, decrypt_aes_gcm
from lockbox_client.config import client_settings
from lockbox_client.errors import BiometricCancelled, BiometricNotEnabled, BiometricUnavailable
from lockbox_client.logging_setup import get_logger

logger = get_logger(__name__)

DEVICE_KEY_SIZE = 32


class DeviceKeystore:
    """File-backed holder of the device wrap key."""

    def __init__(self, key_path):
        self.key_path = Path(key_path)
        self._key: Optional[bytes] = None

    def exists(self) -> bool:
        return self._key is not None or self.key_path.exists()

    def get_or_create(self) -> bytes:
        """Load the device key, generating and persisting it on first use."""
        if self._key is not None:
            return self._key

        if self.key_path.exists():
            try:
                key = base64.b64decode(self.key_path.read_text().strip(), validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValueError(f"Device key file {self.key_path} is corrupt") from e
            if len(key) != DEVICE_KEY_SIZE:
                raise ValueError(f"Device key file {self.key_path} is corrupt")
            self._key = key
            return key

        key = os.urandom(DEVICE_KEY_SIZE)
        self.key_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.key_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(base64.b64encode(key).decode())
        logger.info("Generated new device key")
        self._key = key
        return key

    def wrap(self, plaintext: str) -> str:
        """base64(iv || ciphertext || tag) under the device key, fresh IV per call."""
        sealed = encrypt_aes_gcm(plaintext.encode("utf-8"), self.get_or_create())
        return base64.b64encode(sealed).decode()

    def unwrap(self, token: str) -> str:
        """Raises ValueError if the token is malformed or was not made by this key."""
        try:
            raw = base64.b64decode(token, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise ValueError("Wrapped value is not valid base64") from e
        if len(raw) < NONCE_SIZE + TAG_SIZE:
            raise ValueError("Wrapped value is truncated")
        try:
            return decrypt_aes_gcm(raw, self.get_or_create()).decode("utf-8")
        except (InvalidTag, UnicodeDecodeError) as e:
            raise ValueError("Wrapped value does not match the device key") from e


class BiometricPrompt(Protocol):
    """Platform capability for a local user-verification gesture."""

    def is_available(self) -> bool:
        ...

    def confirm(self, reason: str) -> bool:
        """Block until the user answers. True = verified, False = cancelled/declined."""
        ...


class UnsupportedPrompt:
    """Prompt for devices without a platform authenticator."""

    def is_available(self) -> bool:
        return False

    def confirm(self, reason: str) -> bool:
        return False


class BiometricUnlock:
    """
    Biometric shortcut: the master password wrapped under the device key,
    released only after a fresh gesture.

    State file (JSON): {"enabled": bool, "wrapped_master": str}
    """

    def __init__(self, keystore: DeviceKeystore, prompt: BiometricPrompt, state_path):
        self.keystore = keystore
        self.prompt = prompt
        self.state_path = Path(state_path)

    def _read_state(self) -> dict:
        if not self.state_path.exists():
            return {}
        try:
            state = json.loads(self.state_path.read_text())
        except (OSError, ValueError):
            logger.warning("Biometric state file unreadable, treating as disabled")
            return {}
        return state if isinstance(state, dict) else {}

    def _write_state(self, state: dict) -> None:
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.state_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(state, f)

    def is_supported(self) -> bool:
        try:
            return bool(self.prompt.is_available())
        except Exception:
            logger.exception("Biometric availability check failed")
            return False

    def is_enabled(self) -> bool:
        state = self._read_state()
        return state.get("enabled") is True and bool(state.get("wrapped_master"))

    def _require_gesture(self, reason: str) -> None:
        if not self.is_supported():
            raise BiometricUnavailable()
        if not self.prompt.confirm(reason):
            raise BiometricCancelled()

    def register(self, master_password: str) -> None:
        """
        Gesture, then store the wrapped master password and the enabled flag.
        An unreadable device key clears the state and raises BiometricNotEnabled.
        """
        self._require_gesture("Enable biometric unlock")
        try:
            wrapped = self.keystore.wrap(master_password)
        except ValueError:
            logger.warning("Device key is unusable, disabling biometric unlock")
            self.disable()
            raise BiometricNotEnabled("The device key is unusable. Biometric unlock has been turned off")
        self._write_state({"enabled": True, "wrapped_master": wrapped})
        logger.info("Biometric unlock enabled")

    def authenticate(self) -> str:
        """
        Fresh gesture, then return the unwrapped master password.
        A missing or corrupt wrapped value clears the state and raises
        BiometricNotEnabled so the caller falls back to manual entry.
        """
        if not self.is_enabled():
            raise BiometricNotEnabled()

        self._require_gesture("Unlock your vault")

        wrapped = self._read_state().get("wrapped_master")
        try:
            return self.keystore.unwrap(wrapped)
        except ValueError:
            logger.warning("Stored biometric credential is unusable, disabling")
            self.disable()
            raise BiometricNotEnabled()

    def disable(self) -> None:
        if self.state_path.exists():
            self.state_path.unlink()
        logger.info("Biometric unlock disabled")

    def update_master(self, new_password: str) -> None:
        """Re-wrap after a master password change. No-op when disabled."""
        if self.is_enabled():
            self.register(new_password)


def default_biometric_unlock(prompt: Optional[BiometricPrompt] = None) -> BiometricUnlock:
    """BiometricUnlock over the device state under client_settings.STATE_DIR."""
    return BiometricUnlock(
        DeviceKeystore(client_settings.DEVICE_KEY_PATH),
        prompt or UnsupportedPrompt(),
        client_settings.BIOMETRIC_STATE_PATH,
    )
