from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import HTTPException, status
from loguru import logger

from app.crud import AvailabilityCRUD, StayAvailabilityCRUD
from app.deps import CurrentUser
from app.schemas import StayCreate, StayResponse
from app.services.availability import require_active_property
from app.timeutils import as_date


async def place_stay(
    store: AvailabilityCRUD,
    stays: StayAvailabilityCRUD,
    property_id: UUID,
    payload: StayCreate,
    current_user: CurrentUser,
    today: date,
) -> StayResponse:
    """
    Book a property for whole days.

    Request-level checks run first (400/403); night-by-night availability is
    decided by the store under a row lock (409).
    """
    check_in, check_out = as_date(payload.check_in), as_date(payload.check_out)
    if check_in < today:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Check-in date cannot be in the past",
        )
    if check_out <= check_in:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Check-out date must be after check-in date",
        )

    prop = await require_active_property(store, property_id)
    if prop.host_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You cannot book your own property",
        )
    if prop.max_guests is not None and payload.guests > prop.max_guests:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"This property can accommodate maximum {prop.max_guests} guests",
        )

    stay = await stays.create_stay(
        property_id,
        check_in,
        check_out,
        payload.guests,
        customer_id=current_user.id,
    )
    logger.info(
        "Stay placed: id={} property_id={} check_in={} check_out={}",
        stay.id,
        property_id,
        check_in,
        check_out,
    )
    return stay
