from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    StrictInt,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from app.models import BookingMode, BookingStatus, PaymentStatus
from app.timeutils import is_valid_date, minutes_to_time, parse_time

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
# hours may come without the leading zero ("9:00"); stored zero-padded
WINDOW_TIME_RE = re.compile(r"([0-1]?[0-9]|2[0-3]):[0-5][0-9]")

# amounts are Decimal in Python and plain JSON numbers on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """Public query/booking payloads speak camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# Slot queries
# ---------------------------------------------------------------------------


class SlotResponse(CamelModel):
    start_time: str
    end_time: str
    available: bool
    capacity_left: int


class DayAvailability(CamelModel):
    day: str = Field(alias="date")
    is_available: bool
    has_availability: bool
    total_slots: int
    booked_slots: int


class AvailabilityRangeResponse(CamelModel):
    days: list[DayAvailability]


class NextSlot(CamelModel):
    day: str = Field(alias="date")
    start_time: str


class PropertyNextSlotResponse(CamelModel):
    next_available_slot: NextSlot | None = None
    price_from: Money | None = None
    offer_id: UUID | None = None


class DaysWithSlotsResponse(CamelModel):
    days_with_slots: list[str]


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


class BookingCreate(CamelModel):
    offer_id: UUID
    booking_date: str = Field(alias="date")
    start_time: str
    persons: StrictInt = Field(gt=0)
    customer_name: str = Field(max_length=255)
    customer_email: str = Field(max_length=255)
    customer_phone: str = Field(max_length=64)

    @field_validator("booking_date")
    @classmethod
    def require_calendar_date(cls, v: str) -> str:
        if not is_valid_date(v):
            raise ValueError("Invalid date format. Expected YYYY-MM-DD")
        return v

    @field_validator("start_time")
    @classmethod
    def require_clock_time(cls, v: str) -> str:
        if parse_time(v) is None:
            raise ValueError("Invalid startTime format. Expected HH:MM")
        return minutes_to_time(parse_time(v))

    @field_validator("customer_name", "customer_email", "customer_phone")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("customer_email")
    @classmethod
    def require_email(cls, v: str) -> str:
        if not EMAIL_RE.fullmatch(v):
            raise ValueError("must be a valid email address")
        return v


class BookingSummary(CamelModel):
    """What the booking widget gets back after a successful placement."""

    id: UUID
    status: BookingStatus
    payment_status: PaymentStatus
    booking_date: str = Field(alias="date")
    start_time: str
    end_time: str
    persons: int
    offer_id: UUID
    place_id: UUID

    @field_validator("booking_date", mode="before")
    @classmethod
    def iso_date(cls, v):
        return v.isoformat() if hasattr(v, "isoformat") else v


class BookingResponse(BookingSummary):
    host_id: UUID
    customer_id: UUID | None
    customer_name: str
    customer_email: str
    customer_phone: str
    source: str
    created_at: datetime
    updated_at: datetime


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingFilters(BaseModel):
    """Bind to a FastAPI route via Depends(BookingFilters)."""

    offer_id: UUID | None = None
    place_id: UUID | None = None
    status: BookingStatus | None = None

    # Pagination
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


# ---------------------------------------------------------------------------
# Weekly availability windows
# ---------------------------------------------------------------------------


class AvailabilityWindowCreate(BaseModel):
    weekday: int = Field(ge=0, le=6, description="0 = Monday ... 6 = Sunday")
    start_time: str
    end_time: str
    slot_length_minutes: int = Field(gt=0)
    max_bookings_per_slot: int = Field(gt=0)

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_time(cls, v: str) -> str:
        if not WINDOW_TIME_RE.fullmatch(v):
            raise ValueError("Invalid time format. Use HH:MM (e.g., 09:00)")
        hours, minutes = v.split(":")
        return minutes_to_time(int(hours) * 60 + int(minutes))

    @model_validator(mode="after")
    def validate_time_range(self) -> AvailabilityWindowCreate:
        if parse_time(self.start_time) >= parse_time(self.end_time):
            raise ValueError("start_time must be before end_time")
        return self


class AvailabilityWindowResponse(AvailabilityWindowCreate):
    id: int
    offer_id: UUID

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Day-granularity (stay) availability
# ---------------------------------------------------------------------------


class SeasonalPrice(BaseModel):
    start_date: str
    end_date: str
    price: Money = Field(ge=0)
    name: str | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def require_calendar_date(cls, v: str) -> str:
        if not is_valid_date(v):
            raise ValueError("Invalid date format. Expected YYYY-MM-DD")
        return v

    @model_validator(mode="after")
    def validate_period(self) -> SeasonalPrice:
        if self.start_date > self.end_date:
            raise ValueError("start_date must be before or equal to end_date")
        return self


class AvailabilitySettingsUpdate(BaseModel):
    booking_mode: BookingMode
    min_stay: int = Field(default=1, ge=1)
    max_stay: int | None = Field(default=None, ge=1)
    is_available: bool = True
    seasonal_prices: list[SeasonalPrice] = Field(default_factory=list)
    enable_multi_booking: bool = False
    daily_capacity: int | None = None

    @model_validator(mode="after")
    def validate_limits(self) -> AvailabilitySettingsUpdate:
        if self.max_stay is not None and self.max_stay < self.min_stay:
            raise ValueError("max_stay must be greater than or equal to min_stay")
        if self.enable_multi_booking and (
            self.daily_capacity is None or self.daily_capacity < 1
        ):
            raise ValueError(
                "Daily capacity must be at least 1 when multi-booking is enabled"
            )
        if not self.enable_multi_booking:
            self.daily_capacity = None
        return self


class AvailabilitySettingsResponse(BaseModel):
    property_id: UUID
    booking_mode: BookingMode
    blocked_dates: list[str]
    seasonal_prices: list[SeasonalPrice]
    min_stay: int
    max_stay: int | None
    is_available: bool
    enable_multi_booking: bool
    daily_capacity: int | None

    model_config = ConfigDict(from_attributes=True)


class BlockDatesRequest(BaseModel):
    dates: list[str] = Field(min_length=1)
    action: Literal["block", "unblock"]

    @field_validator("dates")
    @classmethod
    def require_calendar_dates(cls, v: list[str]) -> list[str]:
        bad = [d for d in v if not is_valid_date(d)]
        if bad:
            raise ValueError(f"Invalid dates: {', '.join(bad)}")
        return v


class BlockDatesResponse(BaseModel):
    success: bool
    message: str
    blocked_dates: list[str]


class DateAvailability(CamelModel):
    day: str = Field(alias="date")
    available: bool
    price: Money
    is_blocked: bool
    is_seasonal: bool
    seasonal_name: str | None = None
    capacity: int | None = None
    booked: int | None = None
    occupancy_rate: int | None = None


class AvailabilityCalendar(CamelModel):
    property_id: UUID
    booking_mode: BookingMode
    min_stay: int
    max_stay: int | None
    dates: list[DateAvailability]


class StayCheckRequest(CamelModel):
    check_in: str
    check_out: str

    @field_validator("check_in", "check_out")
    @classmethod
    def require_calendar_date(cls, v: str) -> str:
        if not is_valid_date(v):
            raise ValueError("Invalid date format. Expected YYYY-MM-DD")
        return v


class StayCheckResponse(CamelModel):
    available: bool
    reason: str | None = None


class StayCreate(StayCheckRequest):
    guests: StrictInt = Field(default=1, gt=0)


class StayResponse(CamelModel):
    id: UUID
    property_id: UUID
    customer_id: UUID | None
    check_in: date
    check_out: date
    guests: int
    total_price: Money
    status: BookingStatus


class BookedDatesResponse(CamelModel):
    booked_dates: list[str]


# ---------------------------------------------------------------------------
# Property-wide day slots
# ---------------------------------------------------------------------------


class PropertySlot(SlotResponse):
    offer_id: UUID


class PropertyDaySlotsResponse(CamelModel):
    day: str = Field(alias="date")
    has_availability: bool
    slots: list[PropertySlot]
    price: Money | None = None
    currency: str | None = None
