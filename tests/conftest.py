"""
Shared pytest fixtures available to every test file automatically.
No imports needed in test files — pytest discovers this by convention.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from tortoise import Tortoise

from app.deps import (
    can_admin_delete_booking,
    can_manage_availability,
    can_read_or_manage_booking,
    get_availability_store,
    get_booking_store,
    get_current_user,
    get_notifications_client,
    get_optional_user,
    get_stay_store,
)
from app.routers import booking, offers, properties

from .factories import make_admin, make_customer, make_host

# ---------------------------------------------------------------------------
# Default no-op mocks — prevent real DB / HTTP / Redis calls in router tests
# ---------------------------------------------------------------------------


def _noop_notifications_client():
    mock = MagicMock()
    mock.booking_event = AsyncMock(return_value=True)
    return mock


@pytest.fixture()
def stores():
    """
    One MagicMock per data-access object. Tests set the awaited methods they
    need, e.g. ``stores.bookings.get_booking = AsyncMock(return_value=...)``.
    """
    return SimpleNamespace(
        availability=MagicMock(),
        bookings=MagicMock(),
        stays=MagicMock(),
        notifications=_noop_notifications_client(),
    )


@pytest.fixture(autouse=True)
def slots_cache():
    """Redis is never touched by the test-suite; every cache call is a mock."""
    invalidate = AsyncMock()
    get_cached = AsyncMock(return_value=None)
    set_cached = AsyncMock()
    with (
        patch("app.routers.booking.invalidate_slots_cache", new=invalidate),
        patch("app.routers.offers.invalidate_slots_cache", new=invalidate),
        patch("app.routers.offers.get_slots_cache", new=get_cached),
        patch("app.routers.offers.set_slots_cache", new=set_cached),
    ):
        yield SimpleNamespace(invalidate=invalidate, get=get_cached, set=set_cached)


# ---------------------------------------------------------------------------
# App builder — used by all client fixtures
# ---------------------------------------------------------------------------


def _include_routers(app: FastAPI) -> None:
    app.include_router(booking.router)
    app.include_router(offers.router)
    app.include_router(properties.router)


def build_app(current_user, stores) -> FastAPI:
    """
    Fresh FastAPI app with auth/scope dependencies overridden to return
    `current_user` unconditionally and every store replaced by the mocks
    in `stores`.
    """
    app = FastAPI()
    _include_routers(app)

    async def _user():
        return current_user

    for dep in (
        can_read_or_manage_booking,
        can_admin_delete_booking,
        can_manage_availability,
        get_current_user,
        get_optional_user,
    ):
        app.dependency_overrides[dep] = _user

    app.dependency_overrides[get_availability_store] = lambda: stores.availability
    app.dependency_overrides[get_booking_store] = lambda: stores.bookings
    app.dependency_overrides[get_stay_store] = lambda: stores.stays
    app.dependency_overrides[get_notifications_client] = lambda: stores.notifications
    return app


# ---------------------------------------------------------------------------
# Reusable client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer_client(stores):
    return TestClient(build_app(make_customer(), stores), raise_server_exceptions=True)


@pytest.fixture()
def host_client(stores):
    return TestClient(build_app(make_host(), stores), raise_server_exceptions=True)


@pytest.fixture()
def admin_client(stores):
    return TestClient(build_app(make_admin(), stores), raise_server_exceptions=True)


@pytest.fixture()
def guest_client(stores):
    """Anonymous visitor: optional-user dependency resolves to None."""
    return TestClient(build_app(None, stores), raise_server_exceptions=True)


@pytest.fixture()
def anon_app(stores):
    """
    App with NO auth overrides (stores are still mocked).
    Use this when you want real scope/auth deps to run so you can assert 401/403/422.
    """
    app = FastAPI()
    _include_routers(app)
    app.dependency_overrides[get_availability_store] = lambda: stores.availability
    app.dependency_overrides[get_booking_store] = lambda: stores.bookings
    app.dependency_overrides[get_stay_store] = lambda: stores.stays
    app.dependency_overrides[get_notifications_client] = lambda: stores.notifications
    return app


@pytest.fixture()
def client_factory(stores):
    def _make(current_user) -> TestClient:
        return TestClient(build_app(current_user, stores), raise_server_exceptions=True)

    return _make


# ---------------------------------------------------------------------------
# Real storage — Tortoise on in-memory SQLite
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture()
async def db():
    await Tortoise.init(db_url="sqlite://:memory:", modules={"models": ["app.models"]})
    await Tortoise.generate_schemas()
    try:
        yield
    finally:
        await Tortoise.close_connections()
