# src/lockbox_client/crypto/kdf.py
"""
Master password -> 256-bit key. Used both for the vault key and for the
master-password verifier.
"""
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.backends import default_backend

ITERATIONS = 100000
KEY_LENGTH = 32  # AES-256
SALT_SIZE = 16


def derive_key(password: str, salt: bytes) -> bytes:
    """Derive a 32-byte key from password and salt with PBKDF2-HMAC-SHA256."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=ITERATIONS,
        backend=default_backend()
    )
    return kdf.derive(password.encode("utf-8"))
