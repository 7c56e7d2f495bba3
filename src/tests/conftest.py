"""Pytest fixtures for the pm-sync tests."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio

from pm_sync.api.client import ApiClient
from pm_sync.api.resources import BackendAPI
from pm_sync.config import Settings
from pm_sync.core.auth import AuthController
from pm_sync.core.events import ToastBus
from pm_sync.models import User
from pm_sync.storage.local_store import AUTH_TOKEN_KEY, MemoryStore
from tests.fixtures.backend import BASE_URL, FakeBackend
from tests.fixtures.factories import UserFactory


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings pointing at the fake backend."""
    return Settings(
        api_base_url=BASE_URL,
        api_timeout_seconds=2.0,
        ws_url="ws://backend.test:3001",
        ws_reconnect_delay_seconds=0.01,
        notification_poll_interval_seconds=0.01,
        storage_path=str(tmp_path / "storage.db"),
        log_level="DEBUG",
        log_format="console",
    )


@pytest.fixture
def backend() -> FakeBackend:
    """Create an empty fake backend."""
    return FakeBackend()


@pytest.fixture
def store() -> MemoryStore:
    """Create an empty in-memory store."""
    return MemoryStore()


@pytest_asyncio.fixture
async def api_client(backend: FakeBackend, store: MemoryStore) -> AsyncGenerator[ApiClient, None]:
    """Create an API client wired to the fake backend."""
    client = ApiClient(BASE_URL, store, timeout=2.0, transport=backend.transport)
    yield client
    await client.close()


@pytest.fixture
def api(api_client: ApiClient) -> BackendAPI:
    """Create the endpoint groups over the test client."""
    return BackendAPI(api_client)


@pytest.fixture
def toasts() -> ToastBus:
    """Create a toast bus."""
    return ToastBus()


@pytest.fixture
def auth(api: BackendAPI, store: MemoryStore) -> AuthController:
    """Create a signed-out auth controller."""
    return AuthController(api, store)


@pytest_asyncio.fixture
async def signed_in(auth: AuthController, store: MemoryStore) -> AuthController:
    """Create an auth controller with a stored token and a current user."""
    await store.set(AUTH_TOKEN_KEY, "tok-test")
    auth._authenticate(User.model_validate(UserFactory.create()))
    return auth
