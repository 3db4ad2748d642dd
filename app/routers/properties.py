from datetime import date as date_type
from datetime import timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from app.calendar import booked_dates, build_calendar, check_stay
from app.crud import AvailabilityCRUD, StayAvailabilityCRUD
from app.deps import (
    CurrentUser,
    assert_host_or_admin,
    can_manage_availability,
    get_availability_store,
    get_current_user,
    get_stay_store,
)
from app.routers.params import require_date, require_range
from app.schemas import (
    AvailabilityCalendar,
    AvailabilitySettingsResponse,
    AvailabilitySettingsUpdate,
    BlockDatesRequest,
    BlockDatesResponse,
    BookedDatesResponse,
    DaysWithSlotsResponse,
    PropertyDaySlotsResponse,
    PropertyNextSlotResponse,
    StayCheckRequest,
    StayCheckResponse,
    StayCreate,
    StayResponse,
)
from app.services.availability import (
    days_with_slots,
    next_available_slot_for_property,
    property_day_slots,
    require_active_property,
)
from app.services.stays import place_stay
from app.settings import MAX_RANGE_DAYS
from app.timeutils import as_date

router = APIRouter(prefix="/properties", tags=["properties"])


# ---------------------------------------------------------------------------
# Timed offers across the property
# ---------------------------------------------------------------------------


@router.get("/{property_id}/next-slot", response_model=PropertyNextSlotResponse)
async def get_next_slot(
    property_id: UUID,
    date_start: str = Query(...),
    date_end: str = Query(...),
    store: AvailabilityCRUD = Depends(get_availability_store),
) -> dict:
    """Earliest free slot over every active offer of the property."""
    start, end = require_range(date_start, date_end, "date_start", "date_end")
    await require_active_property(store, property_id)

    found = await next_available_slot_for_property(store, property_id, start, end)
    if found is None:
        return {"nextAvailableSlot": None, "priceFrom": None, "offerId": None}
    return {
        "nextAvailableSlot": {"date": found["date"], "startTime": found["startTime"]},
        "priceFrom": found["priceFrom"],
        "offerId": found["offerId"],
    }


@router.get("/{property_id}/month-availability", response_model=DaysWithSlotsResponse)
async def get_month_availability(
    property_id: UUID,
    start: str = Query(...),
    end: str = Query(...),
    store: AvailabilityCRUD = Depends(get_availability_store),
) -> dict:
    start_day, end_day = require_range(start, end, "start", "end")
    await require_active_property(store, property_id)
    return {"daysWithSlots": await days_with_slots(store, property_id, start_day, end_day)}


@router.get("/{property_id}/day-slots", response_model=PropertyDaySlotsResponse)
async def get_day_slots(
    property_id: UUID,
    date: str = Query(...),
    store: AvailabilityCRUD = Depends(get_availability_store),
) -> dict:
    """Every offer's slots on one day, for the multi-offer booking widget."""
    day = require_date(date)
    await require_active_property(store, property_id)

    offers = await store.list_active_offers(property_id)
    slots = await property_day_slots(store, offers, day)
    return {
        "date": day.isoformat(),
        "hasAvailability": any(s["available"] for s in slots),
        "slots": slots,
        "price": offers[0].base_price if offers else None,
        "currency": offers[0].currency if offers else None,
    }


# ---------------------------------------------------------------------------
# Whole-day stays
# ---------------------------------------------------------------------------


@router.get("/{property_id}/calendar", response_model=AvailabilityCalendar)
async def get_calendar(
    property_id: UUID,
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    store: AvailabilityCRUD = Depends(get_availability_store),
    stays: StayAvailabilityCRUD = Depends(get_stay_store),
) -> dict:
    today = date_type.today()
    start, end = require_range(
        start_date or today.isoformat(),
        end_date or (today + timedelta(days=MAX_RANGE_DAYS)).isoformat(),
        "start_date",
        "end_date",
    )
    prop = await require_active_property(store, property_id)

    config = await stays.get_config(property_id)
    active = await stays.list_active_stays(property_id, start, end)
    return {
        "propertyId": property_id,
        "bookingMode": config.booking_mode,
        "minStay": config.min_stay,
        "maxStay": config.max_stay,
        "dates": build_calendar(start, end, prop.price_per_night, config, active),
    }


@router.post("/{property_id}/check-availability", response_model=StayCheckResponse)
async def check_availability(
    property_id: UUID,
    payload: StayCheckRequest,
    store: AvailabilityCRUD = Depends(get_availability_store),
    stays: StayAvailabilityCRUD = Depends(get_stay_store),
) -> dict:
    await require_active_property(store, property_id)
    check_in, check_out = as_date(payload.check_in), as_date(payload.check_out)

    config = await stays.get_config(property_id)
    active = await stays.list_active_stays(property_id, check_in, check_out)
    available, reason = check_stay(config, active, check_in, check_out)
    return {"available": available, "reason": reason}


@router.get("/{property_id}/booked-dates", response_model=BookedDatesResponse)
async def get_booked_dates(
    property_id: UUID,
    store: AvailabilityCRUD = Depends(get_availability_store),
    stays: StayAvailabilityCRUD = Depends(get_stay_store),
) -> dict:
    """Nights taken by stays that have not checked out before today."""
    await require_active_property(store, property_id)
    upcoming = await stays.list_upcoming_stays(property_id, date_type.today())
    return {"bookedDates": booked_dates(upcoming)}


@router.post(
    "/{property_id}/stays",
    response_model=StayResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_stay(
    property_id: UUID,
    payload: StayCreate,
    current_user: CurrentUser = Depends(get_current_user),
    store: AvailabilityCRUD = Depends(get_availability_store),
    stays: StayAvailabilityCRUD = Depends(get_stay_store),
):
    return await place_stay(
        store, stays, property_id, payload, current_user, today=date_type.today()
    )


@router.get(
    "/{property_id}/availability-settings", response_model=AvailabilitySettingsResponse
)
async def get_availability_settings(
    property_id: UUID,
    current_user: CurrentUser = Depends(can_manage_availability),
    store: AvailabilityCRUD = Depends(get_availability_store),
    stays: StayAvailabilityCRUD = Depends(get_stay_store),
):
    prop = await require_active_property(store, property_id)
    assert_host_or_admin(prop.host_id, current_user)
    return await stays.get_config(property_id)


@router.put(
    "/{property_id}/availability-settings", response_model=AvailabilitySettingsResponse
)
async def update_availability_settings(
    property_id: UUID,
    payload: AvailabilitySettingsUpdate,
    current_user: CurrentUser = Depends(can_manage_availability),
    store: AvailabilityCRUD = Depends(get_availability_store),
    stays: StayAvailabilityCRUD = Depends(get_stay_store),
):
    prop = await require_active_property(store, property_id)
    assert_host_or_admin(prop.host_id, current_user)
    row = await stays.upsert_settings(property_id, payload)
    logger.info("Availability settings updated: property_id={}", property_id)
    return row


@router.post("/{property_id}/blocked-dates", response_model=BlockDatesResponse)
async def update_blocked_dates(
    property_id: UUID,
    payload: BlockDatesRequest,
    current_user: CurrentUser = Depends(can_manage_availability),
    store: AvailabilityCRUD = Depends(get_availability_store),
    stays: StayAvailabilityCRUD = Depends(get_stay_store),
) -> dict:
    prop = await require_active_property(store, property_id)
    assert_host_or_admin(prop.host_id, current_user)
    blocked = await stays.set_blocked_dates(property_id, payload.dates, payload.action)
    return {
        "success": True,
        "message": f"Successfully {payload.action}ed {len(payload.dates)} date(s)",
        "blocked_dates": blocked,
    }
