"""
tests/test_password_service.py -- argon2 hashing and verification.
"""

from __future__ import annotations

import pytest

from conftest import make_settings

from taskmanager.services.password_service import PasswordService


@pytest.fixture(scope="module")
def passwords() -> PasswordService:
    return PasswordService(make_settings())


def test_hash_is_salted_and_verifies(passwords):
    first = passwords.hash_password("secret123")
    second = passwords.hash_password("secret123")
    assert first != second
    assert first.startswith("$argon2id$")
    assert passwords.verify_password("secret123", first)
    assert passwords.verify_password("secret123", second)


def test_wrong_password_fails(passwords):
    hashed = passwords.hash_password("secret123")
    assert not passwords.verify_password("secret124", hashed)


@pytest.mark.parametrize("stored", [None, "", "not-a-hash"])
def test_missing_or_corrupt_hash_fails(passwords, stored):
    assert not passwords.verify_password("secret123", stored)


def test_dummy_verification_never_raises(passwords):
    assert passwords.verify_dummy("anything") is None
