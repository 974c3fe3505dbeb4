"""
Master password verifier.

Stored form: base64(salt[16] || PBKDF2-SHA256 digest[32]). The server keeps
this string as an opaque value; verification happens on the client.
"""
import base64
import binascii
import os

from lockbox_client.crypto.kdf import SALT_SIZE, KEY_LENGTH, derive_key


def hash_password(password: str) -> str:
    """Return a fresh salted verifier for password."""
    salt = os.urandom(SALT_SIZE)
    digest = derive_key(password, salt)
    return base64.b64encode(salt + digest).decode()


def constant_time_equals(a: bytes, b: bytes) -> bool:
    """
    Compare two byte strings without stopping at the first difference.
    Only the length check returns early.
    """
    if len(a) != len(b):
        return False
    result = 0
    for x, y in zip(a, b):
        result |= x ^ y
    return result == 0


def verify_password(password: str, stored_hash: str) -> bool:
    """
    Check password against a verifier from hash_password.
    Malformed verifiers give False, never an exception.
    """
    try:
        combined = base64.b64decode(stored_hash, validate=True)
    except (binascii.Error, ValueError, TypeError):
        return False

    if len(combined) != SALT_SIZE + KEY_LENGTH:
        return False

    salt, expected = combined[:SALT_SIZE], combined[SALT_SIZE:]
    return constant_time_equals(derive_key(password, salt), expected)
