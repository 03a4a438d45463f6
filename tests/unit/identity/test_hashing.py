"""
Name: Identity Hashing Tests

Responsibilities:
  - Argon2 password hashing contract (hash / verify, never raises)
  - Keyed email hashing (normalized, deterministic, key-dependent)
"""

import pytest

from compliance_core.identity.hashing import (
    Argon2PasswordHasher,
    HmacEmailHasher,
    identity_fingerprint,
    normalize_email,
)

pytestmark = pytest.mark.unit


def test_argon2_hash_and_verify():
    hasher = Argon2PasswordHasher()
    password_hash = hasher.hash("correct horse battery staple")

    assert password_hash.startswith("$argon2")
    assert "correct horse" not in password_hash
    assert hasher.verify("correct horse battery staple", password_hash)
    assert not hasher.verify("wrong password!!", password_hash)


def test_argon2_verify_with_garbage_hash_returns_false():
    assert not Argon2PasswordHasher().verify("whatever", "not-a-hash")


def test_email_hash_is_normalized_and_hex():
    hasher = HmacEmailHasher(key="k1")
    digest = hasher.hash("  Alice@Example.COM ")

    assert digest == hasher.hash("alice@example.com")
    assert len(digest) == 64
    assert int(digest, 16) >= 0


def test_email_hash_depends_on_key():
    assert HmacEmailHasher(key="k1").hash("a@b.io") != HmacEmailHasher(key="k2").hash(
        "a@b.io"
    )


def test_empty_key_is_rejected():
    with pytest.raises(ValueError):
        HmacEmailHasher(key="")


def test_identity_fingerprint_matches_email_hash():
    hasher = HmacEmailHasher(key="k1")
    assert identity_fingerprint("Bob@x.io", hasher) == hasher.hash("bob@x.io")
    assert normalize_email(" Bob@X.io ") == "bob@x.io"
