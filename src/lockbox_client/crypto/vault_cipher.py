# src/lockbox_client/crypto/vault_cipher.py
"""
Whole-vault encryption.

Blob layout, base64-encoded as one string:

    salt (16) || iv (12) || AES-256-GCM ciphertext || tag (16)

The key is derived from the master password and the per-blob salt, so a
fresh salt and IV are drawn on every encrypt call.
"""
import base64
import binascii
import json
import os
from typing import Iterable, List

from cryptography.exceptions import InvalidTag

from lockbox_client.crypto.aes_utils import NONCE_SIZE, TAG_SIZE, encrypt_aes_gcm, decrypt_aes_gcm
from lockbox_client.crypto.kdf import SALT_SIZE, derive_key
from lockbox_client.errors import DecryptionError
from lockbox_client.models import PasswordEntry

HEADER_SIZE = SALT_SIZE + NONCE_SIZE


def serialize_entries(entries: Iterable[PasswordEntry]) -> bytes:
    """Canonical, order-preserving UTF-8 JSON encoding of the entry list."""
    return json.dumps(
        [entry.to_dict() for entry in entries],
        ensure_ascii=False,
        separators=(",", ":"),
    ).encode("utf-8")


def deserialize_entries(data: bytes) -> List[PasswordEntry]:
    items = json.loads(data.decode("utf-8"))
    if not isinstance(items, list):
        raise ValueError("vault payload is not a list")
    return [PasswordEntry.from_dict(item) for item in items]


def encrypt_vault(entries: Iterable[PasswordEntry], password: str) -> str:
    """Encrypt the full entry list under password."""
    salt = os.urandom(SALT_SIZE)
    key = derive_key(password, salt)
    sealed = encrypt_aes_gcm(serialize_entries(entries), key)
    return base64.b64encode(salt + sealed).decode()


def decrypt_vault(blob: str, password: str) -> List[PasswordEntry]:
    """
    Decrypt a blob produced by encrypt_vault.

    Raises DecryptionError for a wrong password, a tampered or truncated
    blob, or bad encoding. The cases are deliberately not told apart.
    """
    try:
        combined = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise DecryptionError() from e

    if len(combined) < HEADER_SIZE + TAG_SIZE:
        raise DecryptionError()

    salt = combined[:SALT_SIZE]
    key = derive_key(password, salt)

    try:
        plaintext = decrypt_aes_gcm(combined[SALT_SIZE:], key)
    except InvalidTag as e:
        raise DecryptionError() from e

    try:
        return deserialize_entries(plaintext)
    except (ValueError, KeyError, TypeError) as e:
        raise DecryptionError() from e
