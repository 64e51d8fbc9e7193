"""Pytest fixtures for HTTP-level tests of the authorization API."""

import uuid
from collections.abc import AsyncGenerator
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.app import app
from src.database.session import get_db
from src.modules.authz.auth import get_current_principal
from src.modules.authz.dependencies import (
    get_gate,
    get_membership_service,
    get_policy_client,
    get_resolver,
    get_tracker,
)
from src.modules.authz.schemas import Principal


@pytest.fixture
def principal() -> Principal:
    return Principal(id=uuid.uuid4(), email="operador@jetski.test", global_roles=frozenset({"OPERATOR"}))


@pytest.fixture
def services() -> SimpleNamespace:
    """Mocked collaborators behind the API dependencies."""
    return SimpleNamespace(
        db=AsyncMock(),
        resolver=AsyncMock(),
        gate=AsyncMock(),
        tracker=AsyncMock(),
        memberships=AsyncMock(),
        policy_client=AsyncMock(base_url="http://opa.test"),
    )


def _override(services: SimpleNamespace) -> None:
    async def override_get_db() -> AsyncGenerator:
        yield services.db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_resolver] = lambda: services.resolver
    app.dependency_overrides[get_gate] = lambda: services.gate
    app.dependency_overrides[get_tracker] = lambda: services.tracker
    app.dependency_overrides[get_membership_service] = lambda: services.memberships
    app.dependency_overrides[get_policy_client] = lambda: services.policy_client


@pytest_asyncio.fixture
async def async_client(principal, services) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient wired to the app, authenticated as ``principal``."""
    _override(services)
    app.dependency_overrides[get_current_principal] = lambda: principal

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def anonymous_client(services) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient that goes through real JWT validation."""
    _override(services)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
