from __future__ import annotations

from datetime import date, timedelta
from uuid import UUID

from fastapi import HTTPException, status
from loguru import logger
from tortoise.transactions import in_transaction

from app.calendar import DayConfig, check_stay, default_config, stay_price
from app.models import (
    ACTIVE_STATUSES,
    BookingStatus,
    Offer,
    OfferAvailability,
    OfferBooking,
    PaymentStatus,
    Property,
    PropertyAvailability,
    StayBooking,
)
from app.schemas import (
    AvailabilitySettingsUpdate,
    AvailabilityWindowCreate,
    BookingFilters,
    BookingResponse,
    BookingStatusUpdate,
    BookingSummary,
    StayResponse,
)

SLOT_FULLY_BOOKED = "The selected time slot is fully booked"


class AvailabilityCRUD:
    """Read side of slot availability: offers, weekly windows, occupied slots."""

    async def get_offer(self, offer_id: UUID) -> Offer | None:
        return await Offer.get_or_none(id=offer_id)

    async def get_active_offer(self, offer_id: UUID) -> Offer | None:
        return await Offer.get_or_none(id=offer_id, is_active=True)

    async def list_active_offers(self, place_id: UUID) -> list[Offer]:
        return await Offer.filter(place_id=place_id, is_active=True).order_by("created_at")

    async def get_active_property(self, property_id: UUID) -> Property | None:
        return await Property.get_or_none(id=property_id, is_active=True)

    async def list_windows(
        self, offer_id: UUID, weekday: int | None = None
    ) -> list[OfferAvailability]:
        """Windows of an offer in storage order (ascending id)."""
        qs = OfferAvailability.filter(offer_id=offer_id)
        if weekday is not None:
            qs = qs.filter(weekday=weekday)
        return await qs.order_by("id")

    async def list_windows_for_offers(
        self, offer_ids: list[UUID]
    ) -> list[OfferAvailability]:
        if not offer_ids:
            return []
        return await OfferAvailability.filter(offer_id__in=offer_ids).order_by("id")

    async def add_window(
        self, offer_id: UUID, payload: AvailabilityWindowCreate
    ) -> OfferAvailability:
        return await OfferAvailability.create(offer_id=offer_id, **payload.model_dump())

    async def replace_windows(
        self, offer_id: UUID, payloads: list[AvailabilityWindowCreate]
    ) -> list[OfferAvailability]:
        """Delete-all-then-recreate, atomically."""
        async with in_transaction():
            deleted = await OfferAvailability.filter(offer_id=offer_id).delete()
            created = [
                await OfferAvailability.create(offer_id=offer_id, **p.model_dump())
                for p in payloads
            ]
        logger.info(
            "Replaced availability windows: offer_id={} removed={} created={}",
            offer_id,
            deleted,
            len(created),
        )
        return created

    async def delete_windows(self, offer_id: UUID) -> int:
        return await OfferAvailability.filter(offer_id=offer_id).delete()

    async def list_active_bookings(
        self, offer_id: UUID, start: date, end: date | None = None
    ) -> list[OfferBooking]:
        """Active bookings of an offer on one day, or on every day of [start, end]."""
        qs = OfferBooking.filter(
            offer_id=offer_id,
            status__in=list(ACTIVE_STATUSES),
        )
        if end is None:
            qs = qs.filter(booking_date=start)
        else:
            qs = qs.filter(booking_date__gte=start, booking_date__lte=end)
        return await qs.only("booking_date", "start_time", "status")


class BookingCRUD:
    async def count_active(
        self, offer_id: UUID, booking_date: date, start_time: str
    ) -> int:
        return await OfferBooking.filter(
            offer_id=offer_id,
            booking_date=booking_date,
            start_time=start_time,
            status__in=list(ACTIVE_STATUSES),
        ).count()

    async def create_booking(
        self,
        offer: Offer,
        capacity: int,
        booking_date: date,
        start_time: str,
        end_time: str,
        persons: int,
        customer_name: str,
        customer_email: str,
        customer_phone: str,
        customer_id: UUID | None = None,
        source: str = "online",
    ) -> BookingSummary:
        """
        Persist a pending booking if the slot still has capacity.

        The offer row is locked for the duration of the count-then-insert so
        concurrent placements on the same offer queue up instead of all
        reading the same count.
        """
        async with in_transaction():
            locked = await Offer.filter(id=offer.id).select_for_update().first()
            if locked is None or not locked.is_active:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Offer not found",
                )

            taken = await self.count_active(offer.id, booking_date, start_time)
            if taken >= capacity:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=SLOT_FULLY_BOOKED,
                )

            inst = await OfferBooking.create(
                offer_id=offer.id,
                place_id=offer.place_id,
                host_id=offer.host_id,
                customer_id=customer_id,
                booking_date=booking_date,
                start_time=start_time,
                end_time=end_time,
                persons=persons,
                status=BookingStatus.PENDING,
                payment_status=PaymentStatus.NOT_REQUIRED,
                customer_name=customer_name,
                customer_email=customer_email,
                customer_phone=customer_phone,
                source=source,
            )

        return BookingSummary.model_validate(inst, from_attributes=True)

    async def get_booking(
        self,
        booking_id: UUID,
        customer_id: UUID | None = None,
        host_id: UUID | None = None,
    ) -> BookingResponse | None:
        if customer_id is not None:
            inst = await OfferBooking.get_or_none(id=booking_id, customer_id=customer_id)
        elif host_id is not None:
            inst = await OfferBooking.get_or_none(id=booking_id, host_id=host_id)
        else:
            inst = await OfferBooking.get_or_none(id=booking_id)

        if not inst:
            return None
        return BookingResponse.model_validate(inst, from_attributes=True)

    async def list_bookings(
        self,
        filters: BookingFilters,
        customer_id: UUID | None = None,
        host_id: UUID | None = None,
    ) -> list[BookingResponse]:
        qs = OfferBooking.all()

        if customer_id is not None:
            qs = qs.filter(customer_id=customer_id)
        if host_id is not None:
            qs = qs.filter(host_id=host_id)
        if filters.offer_id is not None:
            qs = qs.filter(offer_id=filters.offer_id)
        if filters.place_id is not None:
            qs = qs.filter(place_id=filters.place_id)
        if filters.status is not None:
            qs = qs.filter(status=filters.status)

        offset = (filters.page - 1) * filters.page_size
        qs = qs.offset(offset).limit(filters.page_size)

        bookings = await qs
        return [
            BookingResponse.model_validate(b, from_attributes=True) for b in bookings
        ]

    async def update_booking_status(
        self,
        booking_id: UUID,
        payload: BookingStatusUpdate,
    ) -> BookingResponse | None:
        inst = await OfferBooking.get_or_none(id=booking_id)
        if not inst:
            return None
        inst.status = payload.status  # type: ignore
        await inst.save(update_fields=["status", "updated_at"])
        return BookingResponse.model_validate(inst, from_attributes=True)

    async def delete_booking(self, booking_id: UUID) -> bool:
        return await OfferBooking.filter(id=booking_id).delete() > 0


class StayAvailabilityCRUD:
    """Property-level day availability settings and whole-day stays."""

    async def get_config(self, property_id: UUID) -> PropertyAvailability | DayConfig:
        row = await PropertyAvailability.get_or_none(property_id=property_id)
        return row if row is not None else default_config(property_id)

    async def upsert_settings(
        self, property_id: UUID, payload: AvailabilitySettingsUpdate
    ) -> PropertyAvailability:
        data = payload.model_dump(mode="json")
        row, _ = await PropertyAvailability.update_or_create(
            defaults=data, property_id=property_id
        )
        return row

    async def set_blocked_dates(
        self, property_id: UUID, dates: list[str], action: str
    ) -> list[str]:
        async with in_transaction():
            row = (
                await PropertyAvailability.filter(property_id=property_id)
                .select_for_update()
                .first()
            )
            if row is None:
                row = await PropertyAvailability.create(property_id=property_id)
            current: list[str] = list(row.blocked_dates or [])
            if action == "block":
                current.extend(d for d in dict.fromkeys(dates) if d not in current)
            else:
                current = [d for d in current if d not in set(dates)]
            row.blocked_dates = current
            await row.save(update_fields=["blocked_dates", "updated_at"])
        return current

    async def list_active_stays(
        self, property_id: UUID, start: date, end: date
    ) -> list[StayBooking]:
        """Active stays touching [start, end]."""
        return await StayBooking.filter(
            property_id=property_id,
            status__in=list(ACTIVE_STATUSES),
            check_out__gt=start,
            check_in__lte=end,
        )

    async def list_upcoming_stays(self, property_id: UUID, since: date) -> list[StayBooking]:
        """Active stays that have not checked out before since."""
        return await StayBooking.filter(
            property_id=property_id,
            status__in=list(ACTIVE_STATUSES),
            check_out__gte=since,
        ).order_by("check_in")

    async def create_stay(
        self,
        property_id: UUID,
        check_in: date,
        check_out: date,
        guests: int,
        customer_id: UUID | None = None,
    ) -> StayResponse:
        """
        Persist a pending stay if every night still has room.

        The property row is locked while the overlapping stays are read and
        the new one is inserted, so two guests cannot both take the last
        free night.
        """
        async with in_transaction():
            prop = await Property.filter(id=property_id).select_for_update().first()
            if prop is None or not prop.is_active:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Property not found",
                )

            config = await self.get_config(property_id)
            active = await self.list_active_stays(
                property_id, check_in, check_out - timedelta(days=1)
            )
            available, reason = check_stay(config, active, check_in, check_out)
            if not available:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=reason)

            inst = await StayBooking.create(
                property_id=property_id,
                customer_id=customer_id,
                check_in=check_in,
                check_out=check_out,
                guests=guests,
                total_price=stay_price(config, prop.price_per_night, check_in, check_out),
                status=BookingStatus.PENDING,
            )

        return StayResponse.model_validate(inst, from_attributes=True)


availability_crud = AvailabilityCRUD()
booking_crud = BookingCRUD()
stay_crud = StayAvailabilityCRUD()
