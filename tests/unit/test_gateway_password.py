"""Unit tests for password hashing utilities."""

from src.mp_gateway.auth.password import hash_password, verify_password


def test_hash_is_not_plain():
    hashed = hash_password("Sprzedam1")
    assert hashed != "Sprzedam1"
    assert hashed.startswith("$2")


def test_verify_correct_password():
    assert verify_password("Sprzedam1", hash_password("Sprzedam1")) is True


def test_verify_wrong_password():
    assert verify_password("Kupie9999", hash_password("Sprzedam1")) is False


def test_salted():
    assert hash_password("Sprzedam1") != hash_password("Sprzedam1")


def test_long_password_truncated_to_bcrypt_limit():
    base = "A1" * 36  # 72 bytes
    hashed = hash_password(base + "ignored-tail")
    assert verify_password(base, hashed) is True


def test_malformed_hash_is_a_mismatch():
    assert verify_password("Sprzedam1", "not-a-bcrypt-hash") is False
