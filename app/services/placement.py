from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException, status
from loguru import logger

from app.crud import AvailabilityCRUD, BookingCRUD
from app.schemas import BookingCreate, BookingSummary
from app.services.availability import require_active_offer
from app.slots import find_window
from app.timeutils import minutes_to_time, parse_date, time_to_minutes, weekday_of

SLOT_NOT_AVAILABLE = "The selected time slot is not available"


async def place_booking(
    store: AvailabilityCRUD,
    bookings: BookingCRUD,
    payload: BookingCreate,
    customer_id: UUID | None = None,
) -> BookingSummary:
    """
    Create a pending booking for one slot of an offer.

    Payload shape is already validated by BookingCreate. The requested start
    must fit inside one of the offer's windows for that weekday; the first
    such window (storage order) sets the slot capacity.
    """
    booking_date = parse_date(payload.booking_date)
    offer = await require_active_offer(store, payload.offer_id)

    windows = await store.list_windows(offer.id, weekday=weekday_of(booking_date))
    window = find_window(payload.start_time, offer.duration_minutes, windows)
    if window is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=SLOT_NOT_AVAILABLE
        )

    end_time = minutes_to_time(
        time_to_minutes(payload.start_time) + offer.duration_minutes
    )

    booking = await bookings.create_booking(
        offer=offer,
        capacity=window.max_bookings_per_slot,
        booking_date=booking_date,
        start_time=payload.start_time,
        end_time=end_time,
        persons=payload.persons,
        customer_name=payload.customer_name,
        customer_email=payload.customer_email,
        customer_phone=payload.customer_phone,
        customer_id=customer_id,
    )
    logger.info(
        "Booking placed: id={} offer_id={} date={} start={}",
        booking.id,
        offer.id,
        booking_date,
        payload.start_time,
    )
    return booking
