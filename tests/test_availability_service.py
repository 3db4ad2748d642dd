"""
Tests for app/services/availability.py against a small in-memory store.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi import HTTPException

from app.services.availability import (
    days_with_slots,
    list_day_slots,
    next_available_slot,
    next_available_slot_for_property,
    property_day_slots,
    summarize_range,
)

from .factories import MONDAY, PROPERTY_ID, booked, offer_obj, window_obj


class InMemoryStore:
    """Implements the read methods of AvailabilityCRUD the services use."""

    def __init__(self, offers=(), windows=(), bookings=()):
        self.offers = list(offers)
        self.windows = list(windows)
        self.bookings = list(bookings)

    async def get_active_offer(self, offer_id):
        return next((o for o in self.offers if o.id == offer_id and o.is_active), None)

    async def list_active_offers(self, place_id):
        return [o for o in self.offers if o.place_id == place_id and o.is_active]

    async def list_windows(self, offer_id, weekday=None):
        return [
            w
            for w in self.windows
            if w.offer_id == offer_id and (weekday is None or w.weekday == weekday)
        ]

    async def list_windows_for_offers(self, offer_ids):
        return [w for w in self.windows if w.offer_id in offer_ids]

    async def list_active_bookings(self, offer_id, start, end=None):
        end = end or start
        return [
            b
            for b in self.bookings
            if b.offer_id == offer_id and start <= b.booking_date <= end
        ]


def _booking(offer_id, start_time, day=MONDAY, status="pending"):
    b = booked(start_time, status, day)
    b.offer_id = offer_id
    return b


@pytest.fixture()
def offer():
    return offer_obj(id=uuid4())


class TestListDaySlots:
    async def test_lists_monday_slots(self, offer):
        store = InMemoryStore([offer], [window_obj(offer_id=offer.id)])
        slots = await list_day_slots(store, offer.id, MONDAY)
        assert [s.start_time for s in slots] == ["10:00", "11:00", "12:00", "13:00"]

    async def test_day_without_windows_is_empty(self, offer):
        store = InMemoryStore([offer], [window_obj(offer_id=offer.id)])
        assert await list_day_slots(store, offer.id, MONDAY + timedelta(days=1)) == []

    async def test_inactive_offer_is_not_found(self):
        inactive = offer_obj(id=uuid4(), is_active=False)
        store = InMemoryStore([inactive], [window_obj(offer_id=inactive.id)])
        with pytest.raises(HTTPException) as exc:
            await list_day_slots(store, inactive.id, MONDAY)
        assert exc.value.status_code == 404


class TestSummarizeRange:
    async def test_one_week(self, offer):
        windows = [window_obj(offer_id=offer.id, start_time="10:00", end_time="12:00")]
        bookings = [_booking(offer.id, "10:00"), _booking(offer.id, "11:00", status="cancelled")]
        store = InMemoryStore([offer], windows, bookings)

        days = await summarize_range(store, offer.id, MONDAY, MONDAY + timedelta(days=6))

        assert len(days) == 7
        monday, tuesday = days[0], days[1]
        assert monday == {
            "date": "2024-01-01",
            "isAvailable": True,
            "hasAvailability": True,
            "totalSlots": 2,
            "bookedSlots": 1,
        }
        assert tuesday["hasAvailability"] is False
        assert tuesday["isAvailable"] is False
        assert tuesday["totalSlots"] == 0

    async def test_fully_booked_day(self, offer):
        windows = [window_obj(offer_id=offer.id, start_time="10:00", end_time="11:00")]
        store = InMemoryStore([offer], windows, [_booking(offer.id, "10:00")])
        (monday,) = await summarize_range(store, offer.id, MONDAY, MONDAY)
        assert monday["isAvailable"] is False
        assert monday["hasAvailability"] is True
        assert monday["bookedSlots"] == monday["totalSlots"] == 1


class TestNextAvailableSlot:
    async def test_skips_full_day(self, offer):
        windows = [window_obj(offer_id=offer.id, start_time="10:00", end_time="11:00")]
        store = InMemoryStore([offer], windows, [_booking(offer.id, "10:00")])
        found = await next_available_slot(
            store, offer, MONDAY, MONDAY + timedelta(days=13)
        )
        assert found == {"date": "2024-01-08", "startTime": "10:00"}

    async def test_none_when_no_windows(self, offer):
        store = InMemoryStore([offer])
        assert await next_available_slot(store, offer, MONDAY, MONDAY) is None

    async def test_none_outside_range(self, offer):
        store = InMemoryStore([offer], [window_obj(offer_id=offer.id, weekday=4)])
        assert await next_available_slot(store, offer, MONDAY, MONDAY + timedelta(days=2)) is None


class TestPropertyQueries:
    async def test_earliest_offer_wins(self):
        offer_a = offer_obj(id=uuid4(), base_price=Decimal("80.00"))
        offer_b = offer_obj(id=uuid4(), base_price=Decimal("40.00"))
        windows = [
            window_obj(id=1, offer_id=offer_a.id, weekday=2),  # Wednesday (day 3)
            window_obj(id=2, offer_id=offer_b.id, weekday=0),  # Monday (day 1)
        ]
        store = InMemoryStore([offer_a, offer_b], windows)

        found = await next_available_slot_for_property(
            store, PROPERTY_ID, MONDAY, MONDAY + timedelta(days=6)
        )

        assert found["date"] == "2024-01-01"
        assert found["startTime"] == "10:00"
        assert found["offerId"] == offer_b.id
        assert found["priceFrom"] == Decimal("40.00")

    async def test_same_day_earlier_start_wins(self):
        offer_a = offer_obj(id=uuid4())
        offer_b = offer_obj(id=uuid4())
        windows = [
            window_obj(id=1, offer_id=offer_a.id, start_time="12:00", end_time="14:00"),
            window_obj(id=2, offer_id=offer_b.id, start_time="09:00", end_time="11:00"),
        ]
        store = InMemoryStore([offer_a, offer_b], windows)
        found = await next_available_slot_for_property(store, PROPERTY_ID, MONDAY, MONDAY)
        assert (found["offerId"], found["startTime"]) == (offer_b.id, "09:00")

    async def test_property_without_offers(self):
        store = InMemoryStore()
        assert (
            await next_available_slot_for_property(store, PROPERTY_ID, MONDAY, MONDAY)
            is None
        )

    async def test_inactive_offers_ignored(self):
        inactive = offer_obj(id=uuid4(), is_active=False)
        store = InMemoryStore([inactive], [window_obj(offer_id=inactive.id)])
        assert await days_with_slots(store, PROPERTY_ID, MONDAY, MONDAY) == []

    async def test_days_with_slots_by_weekday(self):
        offer_a = offer_obj(id=uuid4())
        offer_b = offer_obj(id=uuid4())
        windows = [
            window_obj(id=1, offer_id=offer_a.id, weekday=0),
            window_obj(id=2, offer_id=offer_b.id, weekday=3),
        ]
        store = InMemoryStore([offer_a, offer_b], windows)
        days = await days_with_slots(
            store, PROPERTY_ID, date(2024, 1, 1), date(2024, 1, 14)
        )
        assert days == ["2024-01-01", "2024-01-04", "2024-01-08", "2024-01-11"]


class TestPropertyDaySlots:
    async def test_offers_merged_by_start_time(self):
        offer_a = offer_obj(id=uuid4(), duration_minutes=30)
        offer_b = offer_obj(id=uuid4())
        windows = [
            window_obj(
                id=1,
                offer_id=offer_a.id,
                start_time="11:00",
                end_time="12:00",
                slot_length_minutes=30,
            ),
            window_obj(id=2, offer_id=offer_b.id, start_time="10:00", end_time="12:00"),
        ]
        store = InMemoryStore(
            [offer_a, offer_b], windows, [_booking(offer_b.id, "10:00")]
        )

        slots = await property_day_slots(store, [offer_a, offer_b], MONDAY)

        assert [(s["startTime"], s["offerId"]) for s in slots] == [
            ("10:00", offer_b.id),
            ("11:00", offer_a.id),
            ("11:00", offer_b.id),
            ("11:30", offer_a.id),
        ]
        assert slots[0]["available"] is False
        assert slots[1]["endTime"] == "11:30"

    async def test_no_offers(self):
        assert await property_day_slots(InMemoryStore(), [], MONDAY) == []
