"""
Tests for the device keystore and the biometric shortcut.

Covers:
- Device key generated once, persisted with owner-only permissions, reused
- wrap/unwrap round trip, fresh IV, foreign key / tampering rejected
- register/authenticate/disable with approved, cancelled and unsupported gestures
- Missing or corrupt wrapped value is treated as "not enabled"
"""

import base64
import json
import os
import stat

import pytest

from lockbox_client.crypto.device_keywrap import (
    BiometricUnlock,
    DeviceKeystore,
    UnsupportedPrompt,
    default_biometric_unlock,
)
from lockbox_client.errors import BiometricCancelled, BiometricNotEnabled, BiometricUnavailable
from lockbox_client.config import client_settings


class FakePrompt:
    def __init__(self, available=True, answers=None):
        self.available = available
        self.answers = list(answers or [])
        self.reasons = []

    def is_available(self):
        return self.available

    def confirm(self, reason):
        self.reasons.append(reason)
        return self.answers.pop(0) if self.answers else True


@pytest.fixture
def keystore(tmp_path):
    return DeviceKeystore(tmp_path / "device_key")


@pytest.fixture
def prompt():
    return FakePrompt()


@pytest.fixture
def biometric(keystore, prompt, tmp_path):
    return BiometricUnlock(keystore, prompt, tmp_path / "biometric.json")


class TestDeviceKeystore:
    def test_key_created_once(self, keystore, tmp_path):
        key = keystore.get_or_create()
        assert len(key) == 32
        assert keystore.get_or_create() == key
        assert DeviceKeystore(tmp_path / "device_key").get_or_create() == key

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_key_file_is_owner_only(self, keystore):
        keystore.get_or_create()
        mode = stat.S_IMODE(os.stat(keystore.key_path).st_mode)
        assert mode == 0o600

    def test_wrap_round_trip(self, keystore):
        assert keystore.unwrap(keystore.wrap("TestPass123!")) == "TestPass123!"

    def test_fresh_iv_per_wrap(self, keystore):
        first = base64.b64decode(keystore.wrap("same"))
        second = base64.b64decode(keystore.wrap("same"))
        assert first[:12] != second[:12]

    def test_other_device_cannot_unwrap(self, keystore, tmp_path):
        wrapped = keystore.wrap("TestPass123!")
        other = DeviceKeystore(tmp_path / "other_key")
        with pytest.raises(ValueError):
            other.unwrap(wrapped)

    def test_tampered_token_rejected(self, keystore):
        raw = bytearray(base64.b64decode(keystore.wrap("TestPass123!")))
        raw[-1] ^= 0xFF
        with pytest.raises(ValueError):
            keystore.unwrap(base64.b64encode(bytes(raw)).decode())

    def test_corrupt_key_file(self, tmp_path):
        path = tmp_path / "device_key"
        path.write_text("not-a-key")
        with pytest.raises(ValueError):
            DeviceKeystore(path).get_or_create()


class TestBiometricUnlock:
    def test_register_then_authenticate(self, biometric, prompt):
        assert not biometric.is_enabled()
        biometric.register("TestPass123!")
        assert biometric.is_enabled()
        assert biometric.authenticate() == "TestPass123!"
        assert len(prompt.reasons) == 2

    def test_master_password_not_stored_in_clear(self, biometric):
        biometric.register("TestPass123!")
        assert "TestPass123!" not in biometric.state_path.read_text()

    def test_register_cancelled(self, keystore, tmp_path):
        biometric = BiometricUnlock(keystore, FakePrompt(answers=[False]), tmp_path / "b.json")
        with pytest.raises(BiometricCancelled):
            biometric.register("TestPass123!")
        assert not biometric.is_enabled()

    def test_authenticate_cancelled_keeps_enrollment(self, keystore, tmp_path):
        biometric = BiometricUnlock(keystore, FakePrompt(answers=[True, False]), tmp_path / "b.json")
        biometric.register("TestPass123!")
        with pytest.raises(BiometricCancelled):
            biometric.authenticate()
        assert biometric.is_enabled()

    def test_unsupported_device(self, keystore, tmp_path):
        biometric = BiometricUnlock(keystore, UnsupportedPrompt(), tmp_path / "b.json")
        assert biometric.is_supported() is False
        with pytest.raises(BiometricUnavailable):
            biometric.register("TestPass123!")

    def test_authenticate_when_not_enabled(self, biometric, prompt):
        with pytest.raises(BiometricNotEnabled):
            biometric.authenticate()
        assert prompt.reasons == []

    def test_disable(self, biometric):
        biometric.register("TestPass123!")
        biometric.disable()
        assert not biometric.is_enabled()
        assert not biometric.state_path.exists()
        with pytest.raises(BiometricNotEnabled):
            biometric.authenticate()

    def test_corrupt_wrapped_value_disables(self, biometric):
        biometric.register("TestPass123!")
        biometric.state_path.write_text(json.dumps({"enabled": True, "wrapped_master": "AAAA"}))
        with pytest.raises(BiometricNotEnabled):
            biometric.authenticate()
        assert not biometric.is_enabled()

    def test_lost_device_key_disables(self, biometric, keystore, prompt, tmp_path):
        biometric.register("TestPass123!")
        keystore.key_path.unlink()
        fresh = BiometricUnlock(DeviceKeystore(keystore.key_path), prompt, biometric.state_path)
        with pytest.raises(BiometricNotEnabled):
            fresh.authenticate()
        assert not fresh.is_enabled()

    def test_register_with_corrupt_device_key(self, biometric, prompt, tmp_path):
        biometric.register("master-pass")
        (tmp_path / "device_key").write_text("not a key")
        fresh = BiometricUnlock(DeviceKeystore(tmp_path / "device_key"), prompt, tmp_path / "biometric.json")

        with pytest.raises(BiometricNotEnabled) as exc:
            fresh.register("new-master")
        assert str(tmp_path) not in str(exc.value)
        assert not fresh.is_enabled()
        assert not (tmp_path / "biometric.json").exists()

    def test_unreadable_state_file(self, biometric):
        biometric.state_path.write_text("{broken")
        assert biometric.is_enabled() is False

    def test_update_master_rewraps(self, biometric):
        biometric.register("old-pass")
        biometric.update_master("new-pass")
        assert biometric.authenticate() == "new-pass"

    def test_update_master_when_disabled_is_noop(self, biometric, prompt):
        biometric.update_master("new-pass")
        assert not biometric.is_enabled()
        assert prompt.reasons == []


def test_default_unlock_uses_state_dir():
    biometric = default_biometric_unlock()
    assert biometric.keystore.key_path == client_settings.DEVICE_KEY_PATH
    assert biometric.state_path == client_settings.BIOMETRIC_STATE_PATH
    assert client_settings.DEVICE_KEY_PATH.parent == client_settings.STATE_DIR
    assert not biometric.is_supported()
