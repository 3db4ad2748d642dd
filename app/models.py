from enum import StrEnum

from tortoise import fields
from tortoise.models import Model

from app.settings import DEFAULT_CURRENCY


class BookingStatus(StrEnum):
    PENDING = "pending"  # just created, awaiting host approval
    CONFIRMED = "confirmed"  # host approved
    CANCELLED = "cancelled"  # rejected by host or cancelled by customer


class PaymentStatus(StrEnum):
    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    PAID = "paid"


class BookingMode(StrEnum):
    DAILY = "daily"
    HOURLY = "hourly"


ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


class TimestampedModel(Model):
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:  # type: ignore
        abstract = True


class Property(TimestampedModel):
    id = fields.UUIDField(primary_key=True)
    host_id = fields.UUIDField()
    name = fields.CharField(max_length=255)
    is_active = fields.BooleanField(default=True)
    price_per_night = fields.DecimalField(max_digits=10, decimal_places=2, default=0)
    max_guests = fields.IntField(null=True)  # no limit when unset
    currency = fields.CharField(max_length=3, default=DEFAULT_CURRENCY)

    class Meta:  # type: ignore
        table = "properties"


class Offer(TimestampedModel):
    id = fields.UUIDField(primary_key=True)
    place_id = fields.UUIDField()  # owning property
    host_id = fields.UUIDField()  # denormalized from the property
    title = fields.CharField(max_length=255)
    duration_minutes = fields.IntField()
    is_active = fields.BooleanField(default=True)
    base_price = fields.DecimalField(max_digits=10, decimal_places=2, default=0)
    currency = fields.CharField(max_length=3, default=DEFAULT_CURRENCY)
    min_participants = fields.IntField(default=1)
    max_participants = fields.IntField(null=True)

    class Meta:  # type: ignore
        table = "offers"


class OfferAvailability(TimestampedModel):
    # integer pk: ascending id is storage (creation) order
    id = fields.IntField(primary_key=True)
    offer_id = fields.UUIDField(db_index=True)
    weekday = fields.SmallIntField()  # 0 = Monday
    start_time = fields.CharField(max_length=5)  # "HH:MM"
    end_time = fields.CharField(max_length=5)
    slot_length_minutes = fields.IntField()
    max_bookings_per_slot = fields.IntField(default=1)

    class Meta:  # type: ignore
        table = "offer_availability"
        ordering = ["id"]


class OfferBooking(TimestampedModel):
    id = fields.UUIDField(primary_key=True)

    offer_id = fields.UUIDField(db_index=True)
    place_id = fields.UUIDField()
    host_id = fields.UUIDField()  # denormalized snapshot of the property host
    customer_id = fields.UUIDField(null=True)  # null for anonymous bookings

    booking_date = fields.DateField()
    start_time = fields.CharField(max_length=5)
    end_time = fields.CharField(max_length=5)  # start + offer duration, fixed at creation
    persons = fields.IntField()

    status = fields.CharEnumField(BookingStatus, default=BookingStatus.PENDING)
    payment_status = fields.CharEnumField(
        PaymentStatus, default=PaymentStatus.NOT_REQUIRED
    )

    customer_name = fields.CharField(max_length=255)
    customer_email = fields.CharField(max_length=255)
    customer_phone = fields.CharField(max_length=64)
    source = fields.CharField(max_length=64, default="online")

    class Meta:  # type: ignore
        table = "offer_bookings"
        ordering = ["-created_at"]
        indexes = (("offer_id", "booking_date", "start_time"),)


class PropertyAvailability(TimestampedModel):
    id = fields.IntField(primary_key=True)
    property_id = fields.UUIDField(unique=True)
    booking_mode = fields.CharEnumField(BookingMode, default=BookingMode.DAILY)
    blocked_dates = fields.JSONField(default=list)  # ["YYYY-MM-DD", ...]
    seasonal_prices = fields.JSONField(default=list)  # [{start_date, end_date, price, name}]
    min_stay = fields.IntField(default=1)
    max_stay = fields.IntField(null=True)
    is_available = fields.BooleanField(default=True)
    enable_multi_booking = fields.BooleanField(default=False)
    daily_capacity = fields.IntField(null=True)

    class Meta:  # type: ignore
        table = "property_availability"


class StayBooking(TimestampedModel):
    """Whole-day booking of a property; occupies [check_in, check_out)."""

    id = fields.UUIDField(primary_key=True)
    property_id = fields.UUIDField(db_index=True)
    customer_id = fields.UUIDField(null=True)
    check_in = fields.DateField()
    check_out = fields.DateField()
    guests = fields.IntField(default=1)
    total_price = fields.DecimalField(max_digits=10, decimal_places=2, default=0)
    status = fields.CharEnumField(BookingStatus, default=BookingStatus.PENDING)

    class Meta:  # type: ignore
        table = "stay_bookings"
