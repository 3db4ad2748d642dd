from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from app.cache import invalidate_slots_cache
from app.crud import AvailabilityCRUD, BookingCRUD
from app.deps import (
    CurrentUser,
    NotificationsClient,
    can_admin_delete_booking,
    can_read_or_manage_booking,
    get_availability_store,
    get_booking_store,
    get_current_user,
    get_notifications_client,
    get_optional_user,
)
from app.schemas import (
    BookingCreate,
    BookingFilters,
    BookingResponse,
    BookingStatus,
    BookingStatusUpdate,
    BookingSummary,
)
from app.scopes import BookingScope
from app.services.placement import place_booking
from app.timeutils import as_date

router = APIRouter(prefix="/bookings", tags=["bookings"])


# ---------------------------------------------------------------------------
# Transition guard helpers
# ---------------------------------------------------------------------------

_VALID_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: set(),
    BookingStatus.CANCELLED: set(),
}


def _assert_transition(
    old_status: BookingStatus,
    new_status: BookingStatus,
    booking_customer_id: UUID | None,
    booking_host_id: UUID,
    current_user: CurrentUser,
) -> None:
    """
    Raise HTTP 400/403 if the transition is invalid or the caller lacks permission.

    Rules:
      pending → confirmed : MANAGE + host, OR admin
      pending → cancelled : CANCEL + booker, OR MANAGE + host, OR admin
    """
    if new_status not in _VALID_TRANSITIONS.get(old_status, set()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Cannot transition from '{old_status}' to '{new_status}'. "
                "Allowed: "
                f"{[s.value for s in _VALID_TRANSITIONS.get(old_status, set())]}"
            ),
        )

    if current_user.can_admin_write():
        return

    is_host = current_user.id == booking_host_id
    has_manage = BookingScope.MANAGE in current_user.scopes

    if new_status == BookingStatus.CONFIRMED:
        if not (has_manage and is_host):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=(
                    f"Confirming a booking requires '{BookingScope.MANAGE}' "
                    "scope and being the host."
                ),
            )
        return

    # anonymous bookings have no customer to cancel them
    is_booker = booking_customer_id is not None and current_user.id == booking_customer_id
    has_cancel = BookingScope.CANCEL in current_user.scopes
    if not ((has_cancel and is_booker) or (has_manage and is_host)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=(
                f"Cancelling requires '{BookingScope.CANCEL}' scope as the "
                f"booking owner, or '{BookingScope.MANAGE}' scope as the host."
            ),
        )


def _visibility(current_user: CurrentUser) -> dict[str, UUID]:
    """Which ownership filter applies to the caller's booking reads."""
    is_admin = (
        current_user.is_admin or BookingScope.ADMIN_READ in current_user.scopes
    )
    is_manager = BookingScope.MANAGE in current_user.scopes
    is_reader = BookingScope.READ in current_user.scopes

    if is_admin:
        return {}
    if is_manager and not is_reader:
        return {"host_id": current_user.id}
    return {"customer_id": current_user.id}


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/", response_model=BookingSummary, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    current_user: CurrentUser | None = Depends(get_optional_user),
    store: AvailabilityCRUD = Depends(get_availability_store),
    bookings: BookingCRUD = Depends(get_booking_store),
    notifications: NotificationsClient = Depends(get_notifications_client),
) -> BookingSummary:
    """Place a pending booking on one slot. Anonymous visitors may book too."""
    booking = await place_booking(
        store,
        bookings,
        payload,
        customer_id=current_user.id if current_user else None,
    )
    await invalidate_slots_cache(booking.offer_id, as_date(booking.booking_date))
    await notifications.booking_event(
        "created", booking.model_dump(mode="json", by_alias=True), current_user
    )
    return booking


@router.get("/", response_model=list[BookingResponse])
async def list_bookings(
    filters: BookingFilters = Depends(),
    current_user: CurrentUser = Depends(can_read_or_manage_booking),
    bookings: BookingCRUD = Depends(get_booking_store),
) -> list[BookingResponse]:
    return await bookings.list_bookings(filters=filters, **_visibility(current_user))


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    current_user: CurrentUser = Depends(can_read_or_manage_booking),
    bookings: BookingCRUD = Depends(get_booking_store),
) -> BookingResponse:
    booking = await bookings.get_booking(booking_id, **_visibility(current_user))
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )
    return booking


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: UUID,
    payload: BookingStatusUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    bookings: BookingCRUD = Depends(get_booking_store),
    notifications: NotificationsClient = Depends(get_notifications_client),
) -> BookingResponse:
    # Fetch the booking without ownership filter — we validate permissions manually
    booking = await bookings.get_booking(booking_id)
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )

    _assert_transition(
        old_status=booking.status,
        new_status=payload.status,
        booking_customer_id=booking.customer_id,
        booking_host_id=booking.host_id,
        current_user=current_user,
    )

    updated = await bookings.update_booking_status(booking_id, payload)
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )

    logger.info(
        "Booking {} moved {} -> {} by user_id={}",
        booking_id,
        booking.status,
        payload.status,
        current_user.id,
    )
    await invalidate_slots_cache(booking.offer_id, as_date(booking.booking_date))
    await notifications.booking_event(
        str(payload.status), updated.model_dump(mode="json", by_alias=True), current_user
    )
    return updated


@router.delete(
    "/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(can_admin_delete_booking)],
)
async def delete_booking(
    booking_id: UUID,
    bookings: BookingCRUD = Depends(get_booking_store),
) -> None:
    booking = await bookings.get_booking(booking_id)
    if not booking or not await bookings.delete_booking(booking_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )
    await invalidate_slots_cache(booking.offer_id, as_date(booking.booking_date))
