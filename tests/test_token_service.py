"""
tests/test_token_service.py -- JWT issue/verify and failure modes.

Covers:
  - verify_token(issue_token_pair(id).access_token) == id
  - expired tokens fail with code token_expired
  - wrong secret / wrong kind / garbage fail with code token_invalid
  - tokens issued back to back differ
  - missing secrets fall back to a random per-process secret
"""

from __future__ import annotations

import logging
from datetime import timedelta

import jwt
import pytest

from conftest import make_settings

from taskmanager.core.result import ErrorKind
from taskmanager.services.token_service import (
    TOKEN_EXPIRED,
    TOKEN_INVALID,
    TokenKind,
    TokenService,
    hash_token,
)

USER_ID = "0123456789abcdef01234567"


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(make_settings())


def test_access_token_round_trip(tokens):
    pair = tokens.issue_token_pair(USER_ID)
    result = tokens.verify_token(pair.access_token)
    assert result.ok
    assert result.value == USER_ID


def test_refresh_token_verifies_only_as_refresh(tokens):
    pair = tokens.issue_token_pair(USER_ID)
    assert tokens.verify_token(pair.refresh_token, TokenKind.REFRESH).value == USER_ID

    wrong_kind = tokens.verify_token(pair.refresh_token, TokenKind.ACCESS)
    assert not wrong_kind.ok
    assert wrong_kind.error.code == TOKEN_INVALID
    assert wrong_kind.error.kind is ErrorKind.UNAUTHENTICATED


def test_expired_token_is_distinguishable(tokens):
    token = tokens.create_token(USER_ID, TokenKind.ACCESS, expires_in=timedelta(seconds=-5))
    result = tokens.verify_token(token)
    assert not result.ok
    assert result.error.code == TOKEN_EXPIRED


def test_token_from_another_secret_is_invalid(tokens):
    other = TokenService(make_settings(jwt_secret="someone-else"))
    result = tokens.verify_token(other.issue_token_pair(USER_ID).access_token)
    assert result.error.code == TOKEN_INVALID


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_malformed_tokens_are_invalid(tokens, token):
    assert tokens.verify_token(token).error.code == TOKEN_INVALID


def test_token_without_subject_is_invalid(tokens):
    token = jwt.encode({"exp": 4102444800}, "test-access-secret", algorithm="HS256")
    assert tokens.verify_token(token).error.code == TOKEN_INVALID


def test_tokens_issued_together_differ(tokens):
    first = tokens.issue_token_pair(USER_ID)
    second = tokens.issue_token_pair(USER_ID)
    assert first.refresh_token != second.refresh_token
    assert hash_token(first.refresh_token) != hash_token(second.refresh_token)


def test_missing_secrets_warn_and_still_work(caplog):
    with caplog.at_level(logging.WARNING, logger="taskmanager.tokens"):
        service = TokenService(make_settings(jwt_secret=None, jwt_refresh_secret=None))
    assert "JWT_SECRET" in caplog.text
    pair = service.issue_token_pair(USER_ID)
    assert service.verify_token(pair.access_token).value == USER_ID
    assert not service.verify_token(pair.access_token, TokenKind.REFRESH).ok


def test_identical_secrets_warn(caplog):
    with caplog.at_level(logging.WARNING, logger="taskmanager.tokens"):
        TokenService(make_settings(jwt_secret="same", jwt_refresh_secret="same"))
    assert "iguales" in caplog.text
