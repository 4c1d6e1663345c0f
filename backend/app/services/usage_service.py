"""Usage aggregator — read-only rollups for reporting.

Revenue is the sum of each booking's stored total_amount, so a later change
to the facility's hourly rate does not rewrite history.
"""
import logging
from collections import Counter
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.errors import ValidationError
from app.models.booking import Booking, BookingStatus
from app.models.facility import Facility
from app.services.conflict_service import get_facility

logger = logging.getLogger(__name__)

REPORTED_STATUSES = (BookingStatus.confirmed, BookingStatus.completed)


def _available_hours(facility: Facility, date_from: date, date_to: date) -> Decimal:
    total = Decimal(0)
    day = date_from
    while day <= date_to:
        hours = facility.hours_for(day)
        if hours is not None:
            opens, closes = hours
            span = datetime.combine(day, closes) - datetime.combine(day, opens)
            total += Decimal(int(span.total_seconds())) / Decimal(3600)
        day += timedelta(days=1)
    return total


def _report(facility: Facility, bookings: list[Booking], date_from: date, date_to: date) -> dict[str, Any]:
    total_hours = sum((Decimal(str(b.duration_hours)) for b in bookings), Decimal(0))
    total_revenue = sum((Decimal(str(b.total_amount)) for b in bookings), Decimal(0))
    available = _available_hours(facility, date_from, date_to)
    occupancy = (total_hours / available) if available > 0 else Decimal(0)

    peaks = Counter(f"{b.start_time.hour:02d}:00" for b in bookings)
    return {
        "facility_id": facility.facility_id,
        "facility_name": facility.name,
        "date_from": date_from,
        "date_to": date_to,
        "total_bookings": len(bookings),
        "total_hours": total_hours.quantize(Decimal("0.01")),
        "total_revenue": total_revenue.quantize(Decimal("0.01")),
        "available_hours": available.quantize(Decimal("0.01")),
        "occupancy_rate": occupancy.quantize(Decimal("0.0001")),
        "peak_hours": [{"hour": hour, "bookings": n} for hour, n in sorted(peaks.items())],
    }


def _check_range(date_from: date, date_to: date) -> None:
    if date_to < date_from:
        raise ValidationError("date_to must not be before date_from.", date_from=date_from, date_to=date_to)


def _reported_bookings(db: Session, date_from: date, date_to: date, facility_id: Optional[str] = None) -> list[Booking]:
    query = db.query(Booking).filter(
        Booking.status.in_(REPORTED_STATUSES),
        Booking.booking_date >= date_from,
        Booking.booking_date <= date_to,
    )
    if facility_id:
        query = query.filter(Booking.facility_id == facility_id)
    return query.all()


def facility_usage(db: Session, facility_id: str, date_from: date, date_to: date) -> dict[str, Any]:
    _check_range(date_from, date_to)
    facility = get_facility(db, facility_id)
    bookings = _reported_bookings(db, date_from, date_to, facility_id)
    return _report(facility, bookings, date_from, date_to)


def community_usage(db: Session, date_from: date, date_to: date) -> list[dict[str, Any]]:
    """One usage report per facility over the same range."""
    _check_range(date_from, date_to)
    by_facility: dict[str, list[Booking]] = {}
    for b in _reported_bookings(db, date_from, date_to):
        by_facility.setdefault(b.facility_id, []).append(b)

    facilities = db.query(Facility).order_by(Facility.name).all()
    logger.info("Usage report %s..%s across %d facilities", date_from, date_to, len(facilities))
    return [_report(f, by_facility.get(f.facility_id, []), date_from, date_to) for f in facilities]
