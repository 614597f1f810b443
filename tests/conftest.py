"""
tests/conftest.py -- Shared fixtures for the Task Manager API tests.

This module provides:
  - make_settings(): Settings tuned for tests (cheap argon2, fixed secrets,
    generous rate limits, no $jsonSchema collMod)
  - app_factory: builds an app wired to an in-memory mongomock client and,
    optionally, an injected Redis client (fakeredis or a failing mock)
  - client / cached_client: TestClient with the lifespan running
  - register / login / auth helpers used across route tests

Design: the lifespan is the real one. Mongo and Redis are swapped through
create_app(mongo_client=..., redis_client=...), so the same startup path
(ensure_collections, Services container, pipelines) runs in every test.
"""

from __future__ import annotations

from typing import Any
from uuid import uuid4

import fakeredis
import mongomock
import pytest
from fastapi.testclient import TestClient

from taskmanager.core.config import Settings
from taskmanager.main import create_app

PASSWORD = "secret123"


def make_settings(**overrides: Any) -> Settings:
    base: dict[str, Any] = dict(
        jwt_secret="test-access-secret",
        jwt_refresh_secret="test-refresh-secret",
        mongo_db=f"task_manager_test_{uuid4().hex[:12]}",
        mongo_schema_validation=False,
        password_hash_time_cost=1,
        password_hash_memory_cost=1024,
        password_hash_parallelism=1,
        rate_limit_max_requests=10_000,
        auth_rate_limit_max_attempts=1_000,
        log_level="WARNING",
    )
    base.update(overrides)
    return Settings(**base)


@pytest.fixture
def app_factory():
    """Return a builder: app_factory(redis_client=None, **settings_overrides)."""

    def _make(redis_client: Any = None, **overrides: Any):
        return create_app(
            make_settings(**overrides),
            mongo_client=mongomock.MongoClient(),
            redis_client=redis_client,
        )

    return _make


@pytest.fixture
def client(app_factory):
    """TestClient without response cache."""
    with TestClient(app_factory()) as c:
        yield c


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def cached_client(app_factory, fake_redis):
    """TestClient with the response cache backed by fakeredis."""
    with TestClient(app_factory(redis_client=fake_redis)) as c:
        yield c


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def register(client: TestClient, name: str, email: str, password: str = PASSWORD, role: str | None = None) -> dict:
    """Register a principal and return the response `data` block."""
    payload = {"name": name, "email": email, "password": password}
    if role:
        payload["role"] = role
    resp = client.post("/api/auth/register", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def login(client: TestClient, email: str, password: str = PASSWORD) -> dict:
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


def create_task(client: TestClient, token: str, **fields: Any) -> dict:
    payload = {"title": "Task", "description": "Something to do", **fields}
    resp = client.post("/api/tasks", json=payload, headers=auth(token))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["task"]
