"""
Pure slot arithmetic: no I/O, no shared state.

Windows are anything exposing ``start_time``, ``end_time``,
``slot_length_minutes`` and ``max_bookings_per_slot`` (ORM rows or plain
dataclasses). Bookings only need ``start_time`` and ``status``.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from loguru import logger

from app.models import ACTIVE_STATUSES
from app.timeutils import minutes_to_time, parse_time, time_to_minutes


class WindowLike(Protocol):
    start_time: str
    end_time: str
    slot_length_minutes: int
    max_bookings_per_slot: int


@dataclass(frozen=True)
class Window:
    """Detached availability window, handy for tests and cache payloads."""

    start_time: str
    end_time: str
    slot_length_minutes: int
    max_bookings_per_slot: int = 1
    weekday: int = 0


@dataclass(frozen=True)
class GeneratedSlot:
    start_time: str
    end_time: str
    max_bookings_per_slot: int


@dataclass(frozen=True)
class SlotState:
    start_time: str
    end_time: str
    available: bool
    capacity_left: int

    def as_dict(self) -> dict:
        return {
            "startTime": self.start_time,
            "endTime": self.end_time,
            "available": self.available,
            "capacityLeft": self.capacity_left,
        }


# ---------------------------------------------------------------------------
# Slot generator
# ---------------------------------------------------------------------------


def generate_slots(window: WindowLike, duration_minutes: int) -> list[GeneratedSlot]:
    """
    Bookable slots for one window on one day.

    Starts step by ``slot_length_minutes`` while ``start < end``; a start is
    kept only if the whole activity (``duration_minutes``) finishes at or
    before the window end. Broken windows yield nothing.
    """
    start = parse_time(window.start_time)
    end = parse_time(window.end_time)
    step = window.slot_length_minutes
    if start is None or end is None or not step or step <= 0 or duration_minutes <= 0:
        logger.warning(
            "Skipping malformed availability window: start={} end={} step={} duration={}",
            window.start_time,
            window.end_time,
            step,
            duration_minutes,
        )
        return []

    slots: list[GeneratedSlot] = []
    current = start
    while current < end:
        slot_end = current + duration_minutes
        if slot_end <= end:
            slots.append(
                GeneratedSlot(
                    start_time=minutes_to_time(current),
                    end_time=minutes_to_time(slot_end),
                    max_bookings_per_slot=window.max_bookings_per_slot,
                )
            )
        current += step
    return slots


# ---------------------------------------------------------------------------
# Occupancy counter
# ---------------------------------------------------------------------------


def count_occupancy(bookings: Iterable) -> Counter[str]:
    """Active bookings per slot start time. Cancelled rows never count."""
    counts: Counter[str] = Counter()
    for booking in bookings:
        status = getattr(booking, "status", None)
        if status is not None and status not in ACTIVE_STATUSES:
            continue
        counts[_normalize_time(booking.start_time)] += 1
    return counts


def _normalize_time(value) -> str:
    # storage may hand back "HH:MM:SS" or a datetime.time
    if hasattr(value, "strftime"):
        return value.strftime("%H:%M")
    return str(value)[:5]


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


def is_time_in_window(start_time: str, duration_minutes: int, window: WindowLike) -> bool:
    start = time_to_minutes(start_time)
    return (
        start >= time_to_minutes(window.start_time)
        and start + duration_minutes <= time_to_minutes(window.end_time)
    )


def find_window(
    start_time: str, duration_minutes: int, windows: Iterable[WindowLike]
) -> WindowLike | None:
    """First window, in storage order, that fully contains the requested slot."""
    for window in windows:
        if parse_time(window.start_time) is None or parse_time(window.end_time) is None:
            continue
        if is_time_in_window(start_time, duration_minutes, window):
            return window
    return None


def build_day_slots(
    windows: list[WindowLike],
    duration_minutes: int,
    bookings: Iterable,
) -> list[SlotState]:
    """
    Every slot of one day with its remaining capacity.

    Overlapping windows that produce the same start time collapse into one
    slot; its capacity comes from the first window in storage order that fits
    the slot, which is the same window booking placement would pick.
    """
    occupancy = count_occupancy(bookings)
    seen: dict[str, GeneratedSlot] = {}
    for window in windows:
        for slot in generate_slots(window, duration_minutes):
            if slot.start_time in seen:
                continue
            governing = find_window(slot.start_time, duration_minutes, windows)
            capacity = (
                governing.max_bookings_per_slot
                if governing is not None
                else slot.max_bookings_per_slot
            )
            seen[slot.start_time] = GeneratedSlot(
                slot.start_time, slot.end_time, capacity
            )

    result = []
    for start_time in sorted(seen, key=time_to_minutes):
        slot = seen[start_time]
        left = slot.max_bookings_per_slot - occupancy.get(start_time, 0)
        result.append(
            SlotState(
                start_time=slot.start_time,
                end_time=slot.end_time,
                available=left > 0,
                capacity_left=max(0, left),
            )
        )
    return result


def first_free_slot(slots: Iterable[SlotState]) -> SlotState | None:
    for slot in slots:
        if slot.capacity_left > 0:
            return slot
    return None


def weekdays_with_windows(windows: Iterable) -> set[int]:
    """Weekdays with at least one configured window (occupancy not considered)."""
    return {window.weekday for window in windows}
