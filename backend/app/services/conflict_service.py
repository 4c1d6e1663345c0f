"""Slot conflict checker.

Two reservations [s1, e1) and [s2, e2) on the same facility and date conflict
iff s1 < e2 and s2 < e1 — touching endpoints do not conflict.  A facility's
buffer times widen each existing booking to [start - before, end + after).

Read failures propagate: an error from the store is never reported as
"no conflict".
"""
import logging
from datetime import date, time
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.errors import NotFoundError, ValidationError
from app.models.booking import Booking, ACTIVE_STATUSES
from app.models.facility import Facility

logger = logging.getLogger(__name__)


def _seconds(t: time) -> int:
    return t.hour * 3600 + t.minute * 60 + t.second


def _time_of(seconds: int) -> time:
    return time(seconds // 3600, (seconds % 3600) // 60, seconds % 60)


def duration_hours(start_time: time, end_time: time) -> Decimal:
    return (Decimal(_seconds(end_time) - _seconds(start_time)) / Decimal(3600)).quantize(Decimal("0.01"))


def validate_time_range(start_time: time, end_time: time, **params: Any) -> None:
    """Bookings live within a single calendar date: start strictly before end."""
    if start_time >= end_time:
        raise ValidationError(
            "Start time must be before end time.",
            start_time=start_time,
            end_time=end_time,
            **params,
        )


def intervals_overlap(
    s1: time, e1: time, s2: time, e2: time, before_minutes: int = 0, after_minutes: int = 0,
) -> bool:
    """Half-open overlap of [s1, e1) against [s2, e2) widened to [s2 - before, e2 + after)."""
    return _seconds(s1) < _seconds(e2) + after_minutes * 60 and _seconds(s2) - before_minutes * 60 < _seconds(e1)


def get_facility(db: Session, facility_id: str) -> Facility:
    facility = db.get(Facility, facility_id)
    if facility is None:
        raise NotFoundError("Facility not found.", facility_id=facility_id)
    return facility


def _active_bookings(
    db: Session,
    facility_id: str,
    booking_date: date,
    exclude_booking_id: Optional[str] = None,
) -> list[Booking]:
    query = db.query(Booking).filter(
        Booking.facility_id == facility_id,
        Booking.booking_date == booking_date,
        Booking.status.in_(ACTIVE_STATUSES),
    )
    if exclude_booking_id:
        query = query.filter(Booking.booking_id != exclude_booking_id)
    return query.order_by(Booking.start_time).all()


def find_conflicts(
    db: Session,
    facility: Facility,
    booking_date: date,
    start_time: time,
    end_time: time,
    exclude_booking_id: Optional[str] = None,
) -> list[Booking]:
    """Return the pending/confirmed bookings overlapping the requested window."""
    validate_time_range(start_time, end_time, facility_id=facility.facility_id, booking_date=booking_date)
    buffers = (facility.buffer_before_minutes or 0, facility.buffer_after_minutes or 0)
    return [
        b for b in _active_bookings(db, facility.facility_id, booking_date, exclude_booking_id)
        if intervals_overlap(start_time, end_time, b.start_time, b.end_time, *buffers)
    ]


def has_conflict(
    db: Session,
    facility_id: str,
    booking_date: date,
    start_time: time,
    end_time: time,
    exclude_booking_id: Optional[str] = None,
) -> bool:
    facility = get_facility(db, facility_id)
    conflicts = find_conflicts(db, facility, booking_date, start_time, end_time, exclude_booking_id)
    logger.debug(
        "Conflict check facility=%s date=%s %s-%s: %d overlapping",
        facility_id, booking_date, start_time, end_time, len(conflicts),
    )
    return bool(conflicts)


def available_slots(
    db: Session,
    facility_id: str,
    booking_date: date,
    slot_minutes: Optional[int] = None,
) -> list[dict[str, Any]]:
    """Fixed-size slots across the day's operating window, flagged free or taken."""
    facility = get_facility(db, facility_id)
    hours = facility.hours_for(booking_date)
    if hours is None:
        return []
    step = (slot_minutes or settings.SLOT_MINUTES) * 60
    if step <= 0:
        raise ValidationError("Slot length must be positive.", slot_minutes=slot_minutes)

    opens, closes = (_seconds(t) for t in hours)
    bookings = _active_bookings(db, facility_id, booking_date)
    buffers = (facility.buffer_before_minutes or 0, facility.buffer_after_minutes or 0)

    slots = []
    cursor = opens
    while cursor + step <= closes:
        start, end = _time_of(cursor), _time_of(cursor + step)
        taken = next(
            (b for b in bookings if intervals_overlap(start, end, b.start_time, b.end_time, *buffers)),
            None,
        )
        slots.append({
            "start": start,
            "end": end,
            "is_available": facility.is_available and taken is None,
            "booking_id": taken.booking_id if taken else None,
        })
        cursor += step
    return slots
