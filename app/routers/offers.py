from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from app.cache import get_slots_cache, invalidate_slots_cache, set_slots_cache
from app.crud import AvailabilityCRUD
from app.deps import (
    CurrentUser,
    assert_host_or_admin,
    can_manage_availability,
    get_availability_store,
)
from app.models import Offer
from app.routers.params import require_date, require_range
from app.schemas import (
    AvailabilityRangeResponse,
    AvailabilityWindowCreate,
    AvailabilityWindowResponse,
    NextSlot,
    SlotResponse,
)
from app.services.availability import (
    next_available_slot,
    require_active_offer,
    slots_for_offer_on,
    summarize_range,
)

router = APIRouter(prefix="/offers", tags=["offers"])


async def _owned_offer(
    offer_id: UUID, current_user: CurrentUser, store: AvailabilityCRUD
) -> Offer:
    offer = await store.get_offer(offer_id)
    if offer is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Offer not found"
        )
    assert_host_or_admin(offer.host_id, current_user)
    return offer


# ---------------------------------------------------------------------------
# Public slot queries
# ---------------------------------------------------------------------------


@router.get("/{offer_id}/slots", response_model=list[SlotResponse])
async def get_offer_slots(
    offer_id: UUID,
    date: str = Query(...),
    store: AvailabilityCRUD = Depends(get_availability_store),
) -> list[dict]:
    """Every slot of the offer on one day with its remaining capacity."""
    day = require_date(date)
    offer = await require_active_offer(store, offer_id)

    cached = await get_slots_cache(offer_id, day)
    if cached is not None:
        logger.debug("Cache hit for slots: offer_id={} date={}", offer_id, day)
        return cached

    logger.debug("Cache miss for slots: offer_id={} date={}", offer_id, day)
    slots = [s.as_dict() for s in await slots_for_offer_on(store, offer, day)]
    await set_slots_cache(offer_id, day, slots)
    return slots


@router.get("/{offer_id}/availability", response_model=AvailabilityRangeResponse)
async def get_offer_availability(
    offer_id: UUID,
    start_date: str = Query(..., alias="startDate"),
    end_date: str = Query(..., alias="endDate"),
    store: AvailabilityCRUD = Depends(get_availability_store),
) -> dict:
    start, end = require_range(start_date, end_date, "startDate", "endDate")
    return {"days": await summarize_range(store, offer_id, start, end)}


@router.get("/{offer_id}/next-slot", response_model=NextSlot | None)
async def get_offer_next_slot(
    offer_id: UUID,
    date_start: str = Query(...),
    date_end: str = Query(...),
    store: AvailabilityCRUD = Depends(get_availability_store),
) -> dict | None:
    start, end = require_range(date_start, date_end, "date_start", "date_end")
    offer = await require_active_offer(store, offer_id)
    return await next_available_slot(store, offer, start, end)


# ---------------------------------------------------------------------------
# Weekly availability windows (host / admin)
# ---------------------------------------------------------------------------


@router.get("/{offer_id}/windows", response_model=list[AvailabilityWindowResponse])
async def list_windows(
    offer_id: UUID,
    current_user: CurrentUser = Depends(can_manage_availability),
    store: AvailabilityCRUD = Depends(get_availability_store),
):
    await _owned_offer(offer_id, current_user, store)
    windows = await store.list_windows(offer_id)
    return sorted(windows, key=lambda w: (w.weekday, w.start_time))


@router.post(
    "/{offer_id}/windows",
    response_model=AvailabilityWindowResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_window(
    offer_id: UUID,
    payload: AvailabilityWindowCreate,
    current_user: CurrentUser = Depends(can_manage_availability),
    store: AvailabilityCRUD = Depends(get_availability_store),
):
    await _owned_offer(offer_id, current_user, store)
    window = await store.add_window(offer_id, payload)
    await invalidate_slots_cache(offer_id)
    return window


@router.put("/{offer_id}/windows", response_model=list[AvailabilityWindowResponse])
async def replace_windows(
    offer_id: UUID,
    payload: list[AvailabilityWindowCreate],
    current_user: CurrentUser = Depends(can_manage_availability),
    store: AvailabilityCRUD = Depends(get_availability_store),
):
    """Replace the whole weekly schedule of the offer."""
    await _owned_offer(offer_id, current_user, store)
    windows = await store.replace_windows(offer_id, payload)
    await invalidate_slots_cache(offer_id)
    return windows


@router.delete("/{offer_id}/windows", status_code=status.HTTP_204_NO_CONTENT)
async def delete_windows(
    offer_id: UUID,
    current_user: CurrentUser = Depends(can_manage_availability),
    store: AvailabilityCRUD = Depends(get_availability_store),
) -> None:
    await _owned_offer(offer_id, current_user, store)
    await store.delete_windows(offer_id)
    await invalidate_slots_cache(offer_id)
