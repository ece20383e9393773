"""
tests.conftest

Shared fixtures: an isolated environment, a fake backend collaborator and an in-process app.

Responsibilities:
- Strip config/secret env vars so tests never see the developer's environment.
- Provide a counting client factory that hands out an in-memory fake backend.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio

from comply_gateway.api.app import create_app
from comply_gateway.backend.lifecycle import ClientLifecycle
from comply_gateway.settings import CONFIG_FILE_ENV, ENV_OVERRIDES, Secrets, resolve_settings
from tests.fakes import FakeBackend, FakeClientFactory

SECRET_ENV = ("WECAN_ACCESS_TOKEN", "WECAN_WORKSPACE_KEYS")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for var in (*ENV_OVERRIDES, *SECRET_ENV):
        monkeypatch.delenv(var, raising=False)
    # Point at a file that does not exist so only defaults apply unless a test writes one.
    monkeypatch.setenv(CONFIG_FILE_ENV, str(tmp_path / "missing.json"))


@pytest.fixture
def settings():
    return resolve_settings(cors={"enabled": True, "origin": "https://ui.example.test"})


@pytest.fixture
def secrets() -> Secrets:
    return Secrets(access_token="test-token")


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def factory(backend: FakeBackend) -> FakeClientFactory:
    return FakeClientFactory(backend)


@pytest.fixture
def lifecycle(settings, secrets, factory) -> ClientLifecycle:
    return ClientLifecycle(settings=settings, secrets=secrets, factory=factory)


@pytest.fixture
def app(settings, secrets, lifecycle):
    return create_app(settings=settings, secrets=secrets, lifecycle=lifecycle)


@pytest_asyncio.fixture
async def client(app) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
