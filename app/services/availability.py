"""
Availability queries for timed offers.

Every function takes the data-access object explicitly so the same code runs
against Tortoise in production and against an in-memory store in tests.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from datetime import date
from uuid import UUID

from fastapi import HTTPException, status
from loguru import logger

from app.crud import AvailabilityCRUD
from app.models import Offer
from app.slots import SlotState, build_day_slots, first_free_slot, weekdays_with_windows
from app.timeutils import date_range, weekday_of


async def require_active_offer(store: AvailabilityCRUD, offer_id: UUID) -> Offer:
    """Missing and inactive offers look the same to callers."""
    offer = await store.get_active_offer(offer_id)
    if offer is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Offer not found"
        )
    return offer


async def require_active_property(store: AvailabilityCRUD, property_id: UUID):
    prop = await store.get_active_property(property_id)
    if prop is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Property not found"
        )
    return prop


async def slots_for_offer_on(
    store: AvailabilityCRUD, offer: Offer, day: date
) -> list[SlotState]:
    windows = await store.list_windows(offer.id, weekday=weekday_of(day))
    if not windows:
        return []
    bookings = await store.list_active_bookings(offer.id, day)
    return build_day_slots(windows, offer.duration_minutes, bookings)


async def list_day_slots(
    store: AvailabilityCRUD, offer_id: UUID, day: date
) -> list[SlotState]:
    offer = await require_active_offer(store, offer_id)
    return await slots_for_offer_on(store, offer, day)


async def summarize_range(
    store: AvailabilityCRUD, offer_id: UUID, start: date, end: date
) -> list[dict]:
    """
    Per-day summary for a calendar, computed from one windows query and one
    bookings query for the whole range.
    """
    offer = await require_active_offer(store, offer_id)
    windows = await store.list_windows(offer.id)
    bookings = await store.list_active_bookings(offer.id, start, end)

    windows_by_weekday = defaultdict(list)
    for window in windows:
        windows_by_weekday[window.weekday].append(window)
    bookings_by_day = defaultdict(list)
    for booking in bookings:
        bookings_by_day[booking.booking_date].append(booking)

    days = []
    for day in date_range(start, end):
        day_windows = windows_by_weekday.get(day.weekday(), [])
        slots = build_day_slots(
            day_windows, offer.duration_minutes, bookings_by_day.get(day, [])
        )
        free = [s for s in slots if s.capacity_left > 0]
        days.append(
            {
                "date": day.isoformat(),
                "isAvailable": bool(free),
                "hasAvailability": bool(day_windows),
                "totalSlots": len(slots),
                "bookedSlots": len(slots) - len(free),
            }
        )
    return days


async def next_available_slot(
    store: AvailabilityCRUD, offer: Offer, start: date, end: date
) -> dict | None:
    """Earliest free slot of one offer; stops at the first day that has one."""
    windows = await store.list_windows(offer.id)
    if not windows:
        return None
    windows_by_weekday = defaultdict(list)
    for window in windows:
        windows_by_weekday[window.weekday].append(window)

    for day in date_range(start, end):
        day_windows = windows_by_weekday.get(day.weekday())
        if not day_windows:
            continue
        bookings = await store.list_active_bookings(offer.id, day)
        slot = first_free_slot(
            build_day_slots(day_windows, offer.duration_minutes, bookings)
        )
        if slot is not None:
            return {"date": day.isoformat(), "startTime": slot.start_time}
    return None


async def next_available_slot_for_property(
    store: AvailabilityCRUD, property_id: UUID, start: date, end: date
) -> dict | None:
    """
    Earliest free slot across every active offer of a property.

    Offers are scanned concurrently; the winner is the smallest
    (date, startTime) over all candidates.
    """
    offers = await store.list_active_offers(property_id)
    if not offers:
        return None

    candidates = await asyncio.gather(
        *(next_available_slot(store, offer, start, end) for offer in offers)
    )
    found = [
        {**slot, "offerId": offer.id, "priceFrom": offer.base_price}
        for offer, slot in zip(offers, candidates)
        if slot is not None
    ]
    if not found:
        logger.debug("No free slot for property_id={} in {}..{}", property_id, start, end)
        return None
    return min(found, key=lambda s: (s["date"], s["startTime"]))


async def days_with_slots(
    store: AvailabilityCRUD, property_id: UUID, start: date, end: date
) -> list[str]:
    """
    Days whose weekday has any window on any active offer.

    Cheap calendar-dot query: existing bookings are not subtracted, so a day
    listed here may still turn out fully booked.
    """
    offers = await store.list_active_offers(property_id)
    windows = await store.list_windows_for_offers([o.id for o in offers])
    weekdays = weekdays_with_windows(windows)
    if not weekdays:
        return []
    return [d.isoformat() for d in date_range(start, end) if d.weekday() in weekdays]


async def property_day_slots(
    store: AvailabilityCRUD, offers: list[Offer], day: date
) -> list[dict]:
    """
    Slots of the given offers on one day, ordered by start time. Offers
    sharing a start time keep their listing order.
    """
    per_offer = await asyncio.gather(
        *(slots_for_offer_on(store, offer, day) for offer in offers)
    )
    slots = [
        {**slot.as_dict(), "offerId": offer.id}
        for offer, offer_slots in zip(offers, per_offer)
        for slot in offer_slots
    ]
    return sorted(slots, key=lambda s: s["startTime"])
