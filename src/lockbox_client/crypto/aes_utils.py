from cryptography.hazmat.primitives.ciphers.aead import AESGCM
import os

NONCE_SIZE = 12
TAG_SIZE = 16

def encrypt_aes_gcm(plaintext: bytes, key: bytes) -> bytes:
    """Returns nonce || ciphertext || tag. A new nonce is drawn on every call."""
    nonce = os.urandom(NONCE_SIZE)
    aesgcm = AESGCM(key)
    ct = aesgcm.encrypt(nonce, plaintext, None)
    return nonce + ct

def decrypt_aes_gcm(raw: bytes, key: bytes) -> bytes:
    """Raises cryptography.exceptions.InvalidTag on a wrong key or tampered data."""
    nonce, ct = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
    aesgcm = AESGCM(key)
    return aesgcm.decrypt(nonce, ct, None)
