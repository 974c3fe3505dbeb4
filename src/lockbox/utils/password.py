"""
Account (login) password hashing: salted PBKDF2-HMAC-SHA512.
The vault master password never reaches the server, so it is not handled here.
"""
import hashlib
import secrets
import hmac

ITERATIONS = 210000


def hash_password(password: str) -> str:
    """
    Hash a login password with a random salt.
    Stored as "<iterations>$<salt hex>$<hash hex>".
    """
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha512", password.encode("utf-8"), bytes.fromhex(salt), ITERATIONS
    ).hex()
    return f"{ITERATIONS}${salt}${digest}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a login password against its stored hash.
    """
    try:
        iterations, salt, stored_hash = hashed_password.split('$')
        digest = hashlib.pbkdf2_hmac(
            "sha512", plain_password.encode("utf-8"), bytes.fromhex(salt), int(iterations)
        ).hex()

        # Use constant-time comparison to prevent timing attacks
        return hmac.compare_digest(digest, stored_hash)

    except (ValueError, AttributeError):
        return False
