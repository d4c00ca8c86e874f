"""Password hashing with the ``bcrypt`` library (>=4.0), no passlib."""

import bcrypt

_MAX_BCRYPT_BYTES = 72


def _to_bytes(plain: str) -> bytes:
    # bcrypt >= 4.1 rejects inputs over 72 bytes instead of truncating
    return plain.encode("utf-8")[:_MAX_BCRYPT_BYTES]


def hash_password(plain: str) -> str:
    """Hash a plain-text password. Returns a utf-8 hash string."""
    return bcrypt.hashpw(_to_bytes(plain), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a plain-text password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(_to_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        # malformed stored hash (legacy import)
        return False
