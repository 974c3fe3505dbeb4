# src/lockbox_client/session.py
"""
Unlocked-vault session.

Holds the plaintext master password and the decrypted entries for as long
as the vault is unlocked, and nothing else does. lock() is the only
teardown path; the idle timer calls it too.

Every mutation is a full read-modify-write of the single encrypted blob.
There is no concurrency control: another device saving in between is
silently overwritten.
"""
import threading
from typing import Callable, List, Optional

from lockbox_client import backup as backup_file
from lockbox_client.api_client import VaultApiClient
from lockbox_client.config import client_settings
from lockbox_client.crypto.device_keywrap import BiometricUnlock
from lockbox_client.crypto.master_password import hash_password, verify_password
from lockbox_client.crypto.vault_cipher import decrypt_vault, encrypt_vault
from lockbox_client.errors import (
    AuthFailure,
    BiometricCancelled,
    BiometricNotEnabled,
    BiometricUnavailable,
    CryptoFailure,
    InputError,
    VaultLocked,
)
from lockbox_client.logging_setup import get_logger
from lockbox_client.models import PasswordEntry, now_ms

logger = get_logger(__name__)

MIN_MASTER_PASSWORD_LENGTH = 4


def check_new_master_password(password: str, confirm: Optional[str] = None) -> None:
    """Reject unusable master passwords before any crypto call."""
    if not password:
        raise InputError("Enter a master password")
    if len(password) < MIN_MASTER_PASSWORD_LENGTH:
        raise InputError(f"Master password must be at least {MIN_MASTER_PASSWORD_LENGTH} characters")
    if confirm is not None and confirm != password:
        raise InputError("Passwords do not match")


class VaultSession:

    def __init__(self, api: VaultApiClient, biometric: Optional[BiometricUnlock] = None,
                 auto_lock_seconds: Optional[float] = None,
                 on_lock: Optional[Callable[[], None]] = None):
        self.api = api
        self.biometric = biometric
        self.auto_lock_seconds = (
            client_settings.AUTO_LOCK_SECONDS if auto_lock_seconds is None else auto_lock_seconds
        )
        self.on_lock = on_lock

        self.master_hash: Optional[str] = None
        self._master_password: Optional[str] = None
        self._entries: List[PasswordEntry] = []
        self._timer: Optional[threading.Timer] = None
        self._mutex = threading.RLock()

    # ---------- state ----------

    @property
    def is_unlocked(self) -> bool:
        return self._master_password is not None

    @property
    def needs_setup(self) -> bool:
        return not self.master_hash

    @property
    def entries(self) -> List[PasswordEntry]:
        self._require_unlocked()
        return list(self._entries)

    def _require_unlocked(self) -> None:
        if not self.is_unlocked:
            raise VaultLocked()

    def load(self) -> None:
        """Fetch the master hash so the caller knows whether to set up or unlock."""
        data = self.api.get_vault()
        self.master_hash = data.get("masterHash")

    # ---------- unlock / lock ----------

    def setup(self, password: str, confirm: Optional[str] = None) -> None:
        """First-time master password: hash it and save an empty vault."""
        check_new_master_password(password, confirm)
        self.load()
        if not self.needs_setup:
            raise InputError("A master password is already set")

        master_hash = hash_password(password)
        self.api.save_vault(master_hash, encrypt_vault([], password))

        with self._mutex:
            self.master_hash = master_hash
            self._master_password = password
            self._entries = []
        logger.info("Master password set up")
        self.touch()

    def unlock(self, password: str) -> None:
        if not password:
            raise InputError("Enter your master password")
        if self.needs_setup:
            raise InputError("No master password has been set yet")

        if not verify_password(password, self.master_hash):
            raise AuthFailure("Incorrect master password")

        self._open(password)

    def unlock_with_biometric(self) -> None:
        """
        Unlock with the password released by the biometric shortcut. It is
        checked exactly like a typed one; a stale copy disables the shortcut.
        """
        if self.biometric is None or not self.biometric.is_supported():
            raise BiometricUnavailable()
        if self.needs_setup:
            raise InputError("No master password has been set yet")

        password = self.biometric.authenticate()

        if not verify_password(password, self.master_hash):
            self.biometric.disable()
            raise AuthFailure("Biometric data is no longer valid. Unlock with your master password")

        self._open(password)

    def _open(self, password: str) -> None:
        data = self.api.get_vault()
        if data.get("masterHash"):
            self.master_hash = data["masterHash"]

        encrypted = data.get("encryptedData")
        entries = decrypt_vault(encrypted, password) if encrypted else []

        with self._mutex:
            self._master_password = password
            self._entries = entries
        logger.info("Vault unlocked")
        self.touch()

    def lock(self) -> None:
        """Drop the master password and entries immediately."""
        with self._mutex:
            self._cancel_timer()
            was_unlocked = self.is_unlocked
            self._master_password = None
            self._entries = []
        if was_unlocked:
            logger.info("Vault locked")
            if self.on_lock:
                self.on_lock()

    # ---------- idle timer ----------

    def touch(self) -> None:
        """User activity: restart the idle timer."""
        with self._mutex:
            self._cancel_timer()
            if not self.is_unlocked or self.auto_lock_seconds <= 0:
                return
            self._timer = threading.Timer(self.auto_lock_seconds, self._on_idle)
            self._timer.daemon = True
            self._timer.start()

    def set_auto_lock(self, seconds: float) -> None:
        self.auto_lock_seconds = seconds
        self.touch()

    def _on_idle(self) -> None:
        with self._mutex:
            if threading.current_thread() is not self._timer:
                return
            logger.info(f"No activity for {self.auto_lock_seconds}s, locking")
            self.lock()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    # ---------- entries ----------

    def _new_id(self) -> str:
        taken = {entry.id for entry in self._entries}
        candidate = now_ms()
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)

    def _find_index(self, entry_id: str) -> int:
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return index
        raise InputError(f"No entry with id {entry_id}")

    def _persist(self, entries: List[PasswordEntry]) -> None:
        """Encrypt and save the whole list, then make it current."""
        blob = encrypt_vault(entries, self._master_password)
        self.api.save_vault(self.master_hash, blob)
        self._entries = entries
        self.touch()

    def add_entry(self, site_name: str, password: str, username: Optional[str] = None,
                  notes: Optional[str] = None) -> PasswordEntry:
        with self._mutex:
            self._require_unlocked()
            site_name = (site_name or "").strip()
            if not site_name or not password:
                raise InputError("Site name and password are required")

            entry = PasswordEntry(
                id=self._new_id(),
                siteName=site_name,
                password=password,
                username=username.strip() if username else username,
                notes=notes.strip() if notes else notes,
                updatedAt=now_ms(),
            )
            self._persist(self._entries + [entry])
            return entry

    def update_entry(self, entry_id: str, site_name: Optional[str] = None,
                     password: Optional[str] = None, username: Optional[str] = None,
                     notes: Optional[str] = None) -> PasswordEntry:
        """Change the given fields of one entry; None leaves a field as is."""
        with self._mutex:
            self._require_unlocked()
            index = self._find_index(entry_id)
            current = self._entries[index]

            if site_name is not None and not site_name.strip():
                raise InputError("Site name cannot be empty")
            if password is not None and not password:
                raise InputError("Password cannot be empty")

            updated = PasswordEntry(
                id=current.id,
                siteName=site_name.strip() if site_name is not None else current.siteName,
                password=password if password is not None else current.password,
                username=username.strip() if username is not None else current.username,
                notes=notes.strip() if notes is not None else current.notes,
                updatedAt=now_ms(),
            )
            entries = list(self._entries)
            entries[index] = updated
            self._persist(entries)
            return updated

    def delete_entry(self, entry_id: str) -> None:
        with self._mutex:
            self._require_unlocked()
            self._find_index(entry_id)
            self._persist([entry for entry in self._entries if entry.id != entry_id])

    def find_entries(self, query: str) -> List[PasswordEntry]:
        """Case-insensitive match on site name and username."""
        self._require_unlocked()
        needle = (query or "").strip().lower()
        if not needle:
            return self.entries
        return [
            entry for entry in self._entries
            if needle in entry.siteName.lower() or needle in (entry.username or "").lower()
        ]

    # ---------- master password / reset ----------

    def change_master_password(self, new_password: str, confirm: Optional[str] = None) -> None:
        """
        New verifier and re-encryption under the new password, saved in one
        request. The biometric copy is re-wrapped, or disabled if that fails.
        """
        check_new_master_password(new_password, confirm)
        with self._mutex:
            self._require_unlocked()

            new_hash = hash_password(new_password)
            blob = encrypt_vault(self._entries, new_password)
            self.api.update_master(new_hash, blob)

            self.master_hash = new_hash
            self._master_password = new_password
        logger.info("Master password changed")

        self._rewrap_biometric(new_password)
        self.touch()

    def _rewrap_biometric(self, new_password: str) -> None:
        if self.biometric is None or not self.biometric.is_enabled():
            return
        try:
            self.biometric.update_master(new_password)
        except (BiometricCancelled, BiometricUnavailable, BiometricNotEnabled):
            logger.warning("Could not re-register biometric unlock, disabling it")
            self.biometric.disable()

    def reset(self) -> None:
        """Delete the vault on the server and lock. The next unlock is a setup."""
        self.api.delete_vault()
        if self.biometric is not None:
            self.biometric.disable()
        self.lock()
        self.master_hash = None
        logger.info("Vault reset")

    # ---------- backup ----------

    def export_backup(self, path=None):
        """Write the stored (still encrypted) vault to a backup file."""
        self._require_unlocked()
        data = self.api.get_vault()
        if not data.get("encryptedData") or not data.get("masterHash"):
            raise InputError("There is no saved vault to export")

        backup = backup_file.build_backup(data["masterHash"], data["encryptedData"])
        path = path or backup_file.default_backup_name()
        self.touch()
        return backup_file.write_backup(path, backup)

    def import_backup(self, path, password: Optional[str] = None) -> int:
        """
        Replace the vault with a backup. The backup is decrypted with the
        current master password (or the backup's own password, when given)
        before anything is saved, so undecryptable data is never stored.
        Returns the number of imported entries.
        """
        self._require_unlocked()
        backup = backup_file.read_backup(path)
        password = password or self._master_password

        entries = decrypt_vault(backup["data"], password)
        if not verify_password(password, backup["masterHash"]):
            raise CryptoFailure("The backup's master password record does not match its data")

        self.api.save_vault(backup["masterHash"], backup["data"])

        password_changed = password != self._master_password
        with self._mutex:
            self.master_hash = backup["masterHash"]
            self._master_password = password
            self._entries = entries
        logger.info(f"Imported {len(entries)} entries from backup")

        if password_changed:
            self._rewrap_biometric(password)
        self.touch()
        return len(entries)
