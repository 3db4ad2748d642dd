"""
Day-granularity availability for whole-day (stay) bookings.

A stay occupies every date d with check_in <= d < check_out; the check-out
day itself is free for the next guest.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from app.models import ACTIVE_STATUSES, BookingMode
from app.timeutils import as_date, date_range


@dataclass
class DayConfig:
    """Availability settings used when a property has no stored row."""

    property_id: UUID | None = None
    booking_mode: str = BookingMode.DAILY
    blocked_dates: list[str] = field(default_factory=list)
    seasonal_prices: list[dict] = field(default_factory=list)
    min_stay: int = 1
    max_stay: int | None = None
    is_available: bool = True
    enable_multi_booking: bool = False
    daily_capacity: int | None = None


def default_config(property_id: UUID | None = None) -> DayConfig:
    return DayConfig(property_id=property_id)


def is_multi_booking(config) -> bool:
    return bool(config.enable_multi_booking) and (config.daily_capacity or 1) > 1


def seasonal_period(day: date, seasonal_prices: Iterable[dict]) -> dict | None:
    """First period (stored order) whose inclusive [start_date, end_date] contains day."""
    iso = day.isoformat()
    for season in seasonal_prices:
        if season["start_date"] <= iso <= season["end_date"]:
            return season
    return None


def stays_on(day: date, stays: Iterable) -> int:
    count = 0
    for stay in stays:
        if getattr(stay, "status", None) not in (None, *ACTIVE_STATUSES):
            continue
        if as_date(stay.check_in) <= day < as_date(stay.check_out):
            count += 1
    return count


def occupancy_rate(booked: int, capacity: int) -> int:
    if capacity <= 0:
        return 0
    # half-up: 1 of 8 booked is 13, not 12
    return math.floor(booked / capacity * 100 + 0.5)


def build_calendar(
    start: date,
    end: date,
    base_price: Decimal,
    config,
    stays: list,
) -> list[dict]:
    blocked = set(config.blocked_dates or [])
    seasons = config.seasonal_prices or []
    multi = is_multi_booking(config)
    capacity = config.daily_capacity or 1

    days: list[dict] = []
    for day in date_range(start, end):
        iso = day.isoformat()
        is_blocked = iso in blocked
        season = seasonal_period(day, seasons)
        booked = stays_on(day, stays)

        entry = {
            "date": iso,
            "price": Decimal(str(season["price"])) if season else base_price,
            "isBlocked": is_blocked,
            "isSeasonal": season is not None,
            "seasonalName": season.get("name") if season else None,
        }
        if multi:
            entry["available"] = (
                not is_blocked and bool(config.is_available) and booked < capacity
            )
            entry["capacity"] = capacity
            entry["booked"] = booked
            entry["occupancyRate"] = occupancy_rate(booked, capacity)
        else:
            entry["available"] = (
                not is_blocked and bool(config.is_available) and booked == 0
            )
        days.append(entry)
    return days


def check_stay(config, stays: list, check_in: date, check_out: date) -> tuple[bool, str | None]:
    """
    Whether a new stay [check_in, check_out) fits.

    Capacity is tallied per night, so two stays that never overlap each other
    do not add up against a single night's capacity.
    """
    nights = (check_out - check_in).days
    if nights <= 0:
        return False, "Check-out date must be after check-in date"
    if not config.is_available:
        return False, "Property is not available for booking"
    if nights < (config.min_stay or 1):
        return False, f"Minimum stay is {config.min_stay} night(s)"
    if config.max_stay and nights > config.max_stay:
        return False, f"Maximum stay is {config.max_stay} night(s)"

    blocked = set(config.blocked_dates or [])
    capacity = config.daily_capacity if is_multi_booking(config) else 1
    for day in date_range(check_in, check_out - timedelta(days=1)):
        if day.isoformat() in blocked:
            return False, f"{day.isoformat()} is blocked"
        if stays_on(day, stays) >= capacity:
            return False, f"{day.isoformat()} is fully booked"
    return True, None


def stay_price(config, base_price: Decimal, check_in: date, check_out: date) -> Decimal:
    """Sum of nightly prices, seasonal periods applied per night."""
    seasons = config.seasonal_prices or []
    total = Decimal("0")
    for day in date_range(check_in, check_out - timedelta(days=1)):
        season = seasonal_period(day, seasons)
        total += Decimal(str(season["price"])) if season else Decimal(base_price)
    return total


def booked_dates(stays: Iterable) -> list[str]:
    """Every night occupied by an active stay, sorted and without duplicates."""
    nights: set[str] = set()
    for stay in stays:
        if getattr(stay, "status", None) not in (None, *ACTIVE_STATUSES):
            continue
        check_out = as_date(stay.check_out)
        for day in date_range(as_date(stay.check_in), check_out - timedelta(days=1)):
            nights.add(day.isoformat())
    return sorted(nights)
