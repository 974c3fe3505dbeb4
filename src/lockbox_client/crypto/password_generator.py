import secrets
import string

SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"


def generate_password(length: int = 16, include_symbols: bool = True) -> str:
    """
    Random password from lowercase, uppercase and digits, plus SYMBOLS when
    include_symbols is set. Uses the OS CSPRNG via secrets.
    """
    if length <= 0:
        raise ValueError("length must be positive")

    alphabet = string.ascii_lowercase + string.ascii_uppercase + string.digits
    if include_symbols:
        alphabet += SYMBOLS

    return "".join(secrets.choice(alphabet) for _ in range(length))
