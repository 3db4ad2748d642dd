from datetime import date

from fastapi import HTTPException, status

from app.settings import MAX_RANGE_DAYS
from app.timeutils import check_range, parse_date


def require_date(value: str, name: str = "date") -> date:
    parsed = parse_date(value)
    if parsed is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name} format. Expected YYYY-MM-DD",
        )
    return parsed


def require_range(
    start: str,
    end: str,
    start_name: str = "start date",
    end_name: str = "end date",
    max_days: int = MAX_RANGE_DAYS,
) -> tuple[date, date]:
    """Parse an inclusive date range; 400 if malformed, reversed or too long."""
    start_day = require_date(start, start_name)
    end_day = require_date(end, end_name)
    try:
        check_range(start_day, end_day, max_days)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from None
    return start_day, end_day
