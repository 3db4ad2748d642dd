from dataclasses import dataclass, field
from functools import lru_cache
from urllib.parse import quote, unquote
from uuid import UUID

import httpx
from fastapi import Depends, Header, HTTPException, status
from loguru import logger

from app import settings
from app.crud import (
    AvailabilityCRUD,
    BookingCRUD,
    StayAvailabilityCRUD,
    availability_crud,
    booking_crud,
    stay_crud,
)
from app.scopes import BookingScope


@dataclass
class CurrentUser:
    id: UUID
    username: str
    scopes: list[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return "admin:scopes" in self.scopes or BookingScope.ADMIN in self.scopes

    def can_admin_write(self) -> bool:
        return self.is_admin or BookingScope.ADMIN_WRITE in self.scopes


def _parse_identity(x_user_id: str, x_username: str, x_user_scopes: str) -> CurrentUser:
    try:
        user_id = UUID(x_user_id)
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identity from gateway",
        ) from None

    scopes = x_user_scopes.split(" ") if x_user_scopes else []
    return CurrentUser(id=user_id, username=unquote(x_username), scopes=scopes)


def get_current_user(
    x_user_id: str = Header(...),
    x_username: str = Header(...),
    x_user_scopes: str = Header(default=""),
) -> CurrentUser:
    """
    Reads the headers injected by the gateway after forwardAuth validation.
    The JWT has already been verified — we just trust these headers.
    """
    return _parse_identity(x_user_id, x_username, x_user_scopes)


def get_optional_user(
    x_user_id: str | None = Header(default=None),
    x_username: str = Header(default=""),
    x_user_scopes: str = Header(default=""),
) -> CurrentUser | None:
    """Same as get_current_user, but anonymous callers get None instead of 422."""
    if x_user_id is None:
        return None
    return _parse_identity(x_user_id, x_username, x_user_scopes)


def require_scopes(*required: str):
    """
    Factory that returns a dependency enforcing one or more scopes.

    Usage:
        @router.get("/protected")
        async def route(user = Depends(require_scopes("bookings:read"))):
            ...
    """

    async def _dep(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        missing = [s for s in required if s not in current_user.scopes]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing required scopes: {', '.join(missing)}",
            )
        return current_user

    return _dep


# ---------------------------------------------------------------------------
# Pre-built scope dependencies
# ---------------------------------------------------------------------------

can_admin_delete_booking = require_scopes(BookingScope.ADMIN_DELETE)


async def can_read_or_manage_booking(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """
    Passes if the user can read bookings (customer/admin) OR manage bookings (host).
    - bookings:read   → customer sees own bookings
    - bookings:manage → host sees bookings for their properties
    - admin:bookings* → admin sees all
    """
    has_read = BookingScope.READ in current_user.scopes
    has_manage = BookingScope.MANAGE in current_user.scopes
    has_admin = (
        BookingScope.ADMIN in current_user.scopes
        or BookingScope.ADMIN_READ in current_user.scopes
    )
    if not (has_read or has_manage or has_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=(
                f"Requires '{BookingScope.READ}' (customers), "
                f"'{BookingScope.MANAGE}' (hosts), "
                f"or '{BookingScope.ADMIN_READ}' (admin)."
            ),
        )
    return current_user


async def can_manage_availability(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    if not (
        BookingScope.AVAILABILITY in current_user.scopes
        or current_user.can_admin_write()
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Missing required scopes: {BookingScope.AVAILABILITY}",
        )
    return current_user


def assert_host_or_admin(host_id: UUID, current_user: CurrentUser) -> None:
    """Only the property's host (or an admin) may edit its availability."""
    if current_user.can_admin_write():
        return
    if current_user.id != host_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You must be the property owner or admin.",
        )


# ---------------------------------------------------------------------------
# Data-access dependencies — override these in tests
# ---------------------------------------------------------------------------


def get_availability_store() -> AvailabilityCRUD:
    return availability_crud


def get_booking_store() -> BookingCRUD:
    return booking_crud


def get_stay_store() -> StayAvailabilityCRUD:
    return stay_crud


# ---------------------------------------------------------------------------
# NotificationsClient — thin async wrapper around notifications-ms
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _get_notifications_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.notifications_ms_url,
        timeout=httpx.Timeout(5.0),
        follow_redirects=True,
    )


class NotificationsClient:
    """
    Fire-and-forget booking events for notifications-ms (email / SMS to the
    customer and the host). Delivery failures are logged and never raised.
    """

    @property
    def _client(self) -> httpx.AsyncClient:
        return _get_notifications_http_client()

    def _headers(self, user: CurrentUser | None) -> dict[str, str]:
        if user is None:
            return {}
        return {
            "X-User-Id": str(user.id),
            "X-Username": quote(user.username),
            "X-User-Scopes": " ".join(user.scopes),
        }

    async def booking_event(
        self, event: str, booking: dict, caller: CurrentUser | None = None
    ) -> bool:
        """
        Publish a booking event ("created", "confirmed", "cancelled").
        Returns True on success, False on any error (silently degraded).
        """
        try:
            resp = await self._client.post(
                "/events/bookings",
                json={"event": event, "booking": booking},
                headers=self._headers(caller),
            )
            return resp.status_code < 400
        except httpx.HTTPError:
            logger.warning("Booking event '{}' not delivered", event)
            return False


_notifications_client = NotificationsClient()


def get_notifications_client() -> NotificationsClient:
    return _notifications_client
