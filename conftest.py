"""
conftest.py  – test fixtures for the TripShare backend.

Key points
----------
* The environment is pinned to ``test`` *before* ``main`` is imported, so
  settings, logging and the Firebase bootstrap all see it.
* Every test gets a fresh ``InMemoryDocumentStore`` – no database needed.
* httpx.AsyncClient over ASGITransport with dependency overrides for the
  store and the notification sink.
* Auth uses stub bearer tokens ``test:<uid>:<email>``.

pytest-asyncio runs in ``auto`` mode (see pyproject.toml).
"""
import inspect
import os
from typing import Callable, Dict

# --- Environment (must happen before anything from tripshare/main is imported) ---
os.environ["ENVIRONMENT"] = "test"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ.setdefault("DB_HOST", "localhost")
os.environ.setdefault("DB_PORT", "5432")
os.environ.setdefault("DB_USER", "tripshare")
os.environ.setdefault("DB_PASSWORD", "tripshare")
os.environ.setdefault("DB_NAME", "tripshare_test")
os.environ["APP_ORIGIN"] = "https://app.tripshare.test"
os.environ.pop("EMAIL_API_KEY", None)
os.environ.pop("SENTRY_DSN", None)

import pytest
import pytest_asyncio
import sentry_sdk
from httpx import AsyncClient, ASGITransport

from main import app as fastapi_app
from tripshare.api import deps
from tripshare.db.memory import InMemoryDocumentStore
from tripshare.schemas.user import CurrentUser
from tripshare.services.invitations import InvitationWorkflow
from tripshare.services.gateway import TripGateway
from tripshare.services.session import ViewerSession

from tests.utils import FrozenClock, RecordingNotifier, auth_header, make_user

ORIGIN = "https://app.tripshare.test"


# --------------------------------------------------------------------------
# Storage / collaborators
# --------------------------------------------------------------------------
@pytest.fixture()
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


# --------------------------------------------------------------------------
# Identities
# --------------------------------------------------------------------------
@pytest.fixture()
def owner() -> CurrentUser:
    return make_user("owner-uid", "owner@example.com")


@pytest.fixture()
def collaborator() -> CurrentUser:
    return make_user("collab-uid", "a@x.com")


@pytest.fixture()
def stranger() -> CurrentUser:
    return make_user("stranger-uid", "stranger@example.com")


# --------------------------------------------------------------------------
# Service factories (unit-level tests)
# --------------------------------------------------------------------------
@pytest.fixture()
def make_workflow(store, notifier, clock) -> Callable[[CurrentUser], InvitationWorkflow]:
    """
    Tests call:  workflow = make_workflow(user)
    Every call builds a fresh session, like a new request would.
    """
    def _make(user: CurrentUser) -> InvitationWorkflow:
        return InvitationWorkflow(ViewerSession(store, user), notifier, origin=ORIGIN, clock=clock)

    return _make


@pytest.fixture()
def make_gateway(store) -> Callable[[CurrentUser], TripGateway]:
    def _make(user: CurrentUser) -> TripGateway:
        return TripGateway(ViewerSession(store, user))

    return _make


# --------------------------------------------------------------------------
# httpx.AsyncClient with dependency overrides for store + notifier
# --------------------------------------------------------------------------
@pytest_asyncio.fixture()
async def client(store, notifier):
    async def override_get_store():
        yield store

    fastapi_app.dependency_overrides[deps.get_store] = override_get_store
    fastapi_app.dependency_overrides[deps.get_notifier] = lambda: notifier

    # httpx 0.25+ only needs lifespan arg when supported
    if "lifespan" in inspect.signature(ASGITransport).parameters:
        transport = ASGITransport(app=fastapi_app, lifespan="auto")
    else:
        transport = ASGITransport(app=fastapi_app)

    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()


# ---------- helper: build an Authorization header for a given user ----------
@pytest.fixture
def make_auth_header() -> Callable[[CurrentUser], Dict[str, str]]:
    """
    Tests call:  headers = make_auth_header(owner)
    """
    def _make(user: CurrentUser) -> Dict[str, str]:
        return auth_header(user.id, user.email or "")

    return _make


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """
    Ensure SlowAPI's in-memory storage is empty for every test.
    """
    limiter = getattr(fastapi_app.state, "limiter", None)
    if limiter:
        limiter.reset()
    yield
    if limiter:
        limiter.reset()


@pytest.fixture(scope="session", autouse=True)
def _close_sentry():
    """
    Flush the event queue and disable the client after the test
    session ends, if a client was initialised.
    """
    yield
    sentry_sdk.flush()
    client = sentry_sdk.get_client()
    if client is not None:
        client.close(timeout=2.0)
