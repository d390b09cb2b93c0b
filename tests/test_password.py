# tests/test_password.py
import base64
import hashlib
import random
import string

import pytest

from auth_service.errors import HashingError

ALPHABET = string.ascii_letters + string.digits + string.punctuation + " áéíóúñ€漢字"


def random_passwords(count, seed=1234, max_len=40):
    rng = random.Random(seed)
    return ["".join(rng.choice(ALPHABET) for _ in range(rng.randint(0, max_len))) for _ in range(count)]


@pytest.mark.parametrize("password", random_passwords(15))
def test_hash_round_trip(hasher, password):
    """verify(p, hash(p)) es verdadero para cualquier contraseña."""
    assert hasher.verify(password, hasher.hash(password))


@pytest.mark.parametrize("password", random_passwords(15, seed=99))
def test_wrong_password_rejected(hasher, password):
    digest = hasher.hash(password)
    assert not hasher.verify(password + "x", digest)
    assert not hasher.verify("x" + password, digest)


def test_hash_is_salted(hasher):
    first = hasher.hash("secret123")
    second = hasher.hash("secret123")
    assert first != second, "Dos hashes de la misma contraseña deben usar sal distinta"
    assert hasher.verify("secret123", first)
    assert hasher.verify("secret123", second)


def test_hash_never_contains_plaintext(hasher):
    assert "secret123" not in hasher.hash("secret123")


def test_hash_uses_configured_rounds(hasher):
    assert hasher.hash("secret123").startswith(f"$2b${hasher.rounds:02d}$")


def test_long_passwords_sharing_prefix_stay_distinct(hasher):
    """Contraseñas de más de 72 bytes que solo difieren al final no deben colisionar."""
    base = "a" * 100
    digest = hasher.hash(base + "1")
    assert hasher.verify(base + "1", digest)
    assert not hasher.verify(base + "2", digest)


def sha256_b64(password):
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest()).decode("ascii")


def test_digest_of_long_password_is_not_accepted(hasher):
    """El resumen SHA-256 de una contraseña larga no sirve como contraseña."""
    long_password = "a" * 100
    digest = hasher.hash(long_password)
    assert hasher.verify(long_password, digest)
    assert not hasher.verify(sha256_b64(long_password), digest)


def test_digest_of_short_password_is_not_accepted(hasher):
    assert not hasher.verify(sha256_b64("secret123"), hasher.hash("secret123"))
    assert not hasher.verify("secret123", hasher.hash(sha256_b64("secret123")))


def test_password_with_nul_byte(hasher):
    digest = hasher.hash("abc\x00def")
    assert hasher.verify("abc\x00def", digest)
    assert not hasher.verify("abc", digest)


@pytest.mark.parametrize("bad_hash", ["", "not-a-bcrypt-hash", "$2b$04$tooshort"])
def test_malformed_hash_raises(hasher, bad_hash):
    with pytest.raises(HashingError):
        hasher.verify("secret123", bad_hash)
