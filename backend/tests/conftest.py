"""Pytest configuration and fixtures for portal tests.

Provides a fresh seeded store per test, an in-process HTTP client against
the FastAPI app, and tokens/headers for each seeded role.
"""

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient

from portal.auth.jwt import create_access_token
from portal.client.api import PortalClient
from portal.config import settings
from portal.main import app
from portal.middleware.rate_limit import SlidingWindowLimiter
from portal.store import PortalStore, UserAccount, get_store, seed_store

BASE_URL = "http://test"


@pytest.fixture(autouse=True)
def _fast_password_hashing(monkeypatch):
    """Keep PBKDF2 cheap in tests; verification reads the count from the hash."""
    monkeypatch.setattr(settings, "password_hash_iterations", 1_000)


@pytest.fixture(autouse=True)
def _isolated_token_store(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "token_store_path", str(tmp_path / "storage.json"))


# ── Store / app ──────────────────────────────────────────────────

@pytest.fixture
def store() -> PortalStore:
    """Fresh store seeded with one account per role."""
    return seed_store(PortalStore())


@pytest.fixture
def transport(store: PortalStore) -> httpx.ASGITransport:
    app.dependency_overrides[get_store] = lambda: store
    app.state.rate_limits = SlidingWindowLimiter()
    yield httpx.ASGITransport(app=app)
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(transport) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the app with the test store."""
    async with AsyncClient(transport=transport, base_url=BASE_URL) as client:
        yield client


# ── Accounts ─────────────────────────────────────────────────────

@pytest.fixture
def citizen(store: PortalStore) -> UserAccount:
    return store.find_user_by_email("citizen@portal.gov.ng")


@pytest.fixture
def official(store: PortalStore) -> UserAccount:
    return store.find_user_by_email("official@portal.gov.ng")


@pytest.fixture
def admin(store: PortalStore) -> UserAccount:
    return store.find_user_by_email("admin@portal.gov.ng")


def _token_for(account: UserAccount) -> str:
    return create_access_token(user_id=account.id, role=account.role.value)


@pytest.fixture
def citizen_token(citizen: UserAccount) -> str:
    return _token_for(citizen)


@pytest.fixture
def auth_headers(citizen_token: str) -> dict:
    """Authorization headers for the seeded citizen."""
    return {"Authorization": f"Bearer {citizen_token}"}


@pytest.fixture
def reviewer_headers(official: UserAccount) -> dict:
    return {"Authorization": f"Bearer {_token_for(official)}"}


@pytest.fixture
def admin_headers(admin: UserAccount) -> dict:
    return {"Authorization": f"Bearer {_token_for(admin)}"}


# ── API client ───────────────────────────────────────────────────

@pytest_asyncio.fixture
async def api(transport, citizen_token: str) -> AsyncGenerator[PortalClient, None]:
    """PortalClient signed in as the seeded citizen."""
    async with PortalClient(BASE_URL, token_provider=lambda: citizen_token, transport=transport) as api:
        yield api


@pytest_asyncio.fixture
async def reviewer_api(transport, official: UserAccount) -> AsyncGenerator[PortalClient, None]:
    token = _token_for(official)
    async with PortalClient(BASE_URL, token_provider=lambda: token, transport=transport) as api:
        yield api


@pytest_asyncio.fixture
async def admin_api(transport, admin: UserAccount) -> AsyncGenerator[PortalClient, None]:
    token = _token_for(admin)
    async with PortalClient(BASE_URL, token_provider=lambda: token, transport=transport) as api:
        yield api
