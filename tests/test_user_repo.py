"""
tests/test_user_repo.py -- User repository rules that guard refresh rotation.

Covers:
  - the conditional swap only replaces the hash it was told to expect
  - a superseded hash loses the swap and leaves the stored value untouched
  - admin_ids lists only admins
"""

from __future__ import annotations

from uuid import uuid4

import mongomock
import pytest

from taskmanager.repositories import user_repo


@pytest.fixture
def db():
    return mongomock.MongoClient()[f"user_repo_{uuid4().hex[:12]}"]


def _user(db, email: str, **extra) -> str:
    doc = user_repo.insert_user(db, {"name": "U", "email": email, "password": "x", **extra})
    return str(doc["_id"])


def test_swap_replaces_current_hash(db):
    uid = _user(db, "a@x.com", refresh_token_hash="h0")
    assert user_repo.swap_refresh_token_hash(db, uid, "h0", "h1") is True
    assert user_repo.get_user_by_id(db, uid)["refresh_token_hash"] == "h1"


def test_swap_with_superseded_hash_is_rejected(db):
    """Two refreshes presenting the same token: only the first swap wins."""
    uid = _user(db, "b@x.com", refresh_token_hash="h0")
    assert user_repo.swap_refresh_token_hash(db, uid, "h0", "h1") is True
    assert user_repo.swap_refresh_token_hash(db, uid, "h0", "h2") is False
    assert user_repo.get_user_by_id(db, uid)["refresh_token_hash"] == "h1"


def test_swap_after_logout_is_rejected(db):
    uid = _user(db, "c@x.com", refresh_token_hash="h0")
    user_repo.set_refresh_token_hash(db, uid, None)
    assert user_repo.swap_refresh_token_hash(db, uid, "h0", "h1") is False
    assert user_repo.get_user_by_id(db, uid)["refresh_token_hash"] is None


def test_admin_ids_lists_only_admins(db):
    admin = _user(db, "adm@x.com", role="admin")
    _user(db, "usr@x.com")
    assert user_repo.admin_ids(db) == [admin]
