"""Booking store — creation via reserve-if-free, cancellation, queries.

Responsibilities:
- Validation: time range, past dates, facility availability, operating hours
- Reserve-if-free: conflict check and insert run as one critical section
  (per-facility lock + SELECT ... FOR UPDATE on the facility row)
- Derived amounts: duration_hours and total_amount frozen at creation
- Cancellation: requester or approver only, idempotent, never retroactive
"""
import logging
from datetime import date, time
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Query, Session

from app.clock import Clock
from app.config import settings
from app.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from app.models.booking import Booking, BookingStatus
from app.models.facility import Facility
from app.services import notification_service, reminder_service
from app.services.authorization import RoleChecker, require_role
from app.services.conflict_service import duration_hours, find_conflicts, validate_time_range
from app.services.locks import facility_locks

logger = logging.getLogger(__name__)


def facility_for_update(db: Session, facility_id: str) -> Query:
    """The facility row read FOR UPDATE: a row lock on PostgreSQL, ignored by SQLite."""
    return (
        db.query(Facility)
        .filter(Facility.facility_id == facility_id)
        .populate_existing()
        .with_for_update()
    )


def booking_for_update(db: Session, booking_id: str) -> Query:
    return (
        db.query(Booking)
        .filter(Booking.booking_id == booking_id)
        .populate_existing()
        .with_for_update()
    )


def _lock_facility(db: Session, facility_id: str) -> Facility:
    facility = facility_for_update(db, facility_id).one_or_none()
    if facility is None:
        raise NotFoundError("Facility not found.", facility_id=facility_id)
    return facility


def _check_bookable(facility: Facility, booking_date: date, start_time: time, end_time: time, params: dict) -> None:
    if not facility.is_available:
        raise ValidationError("Facility is not available for booking.", **params)

    hours = facility.hours_for(booking_date)
    if hours is None:
        raise ValidationError("Facility is closed on the requested day.", **params)
    opens, closes = hours
    if start_time < opens or end_time > closes:
        raise ValidationError(
            f"Requested time is outside operating hours ({opens:%H:%M}-{closes:%H:%M}).",
            opens=opens,
            closes=closes,
            **params,
        )


def create_booking(
    db: Session,
    facility_id: str,
    user_id: str,
    booking_date: date,
    start_time: time,
    end_time: time,
    clock: Clock,
    purpose: Optional[str] = None,
    notes: Optional[str] = None,
    recurring_booking_id: Optional[str] = None,
) -> Booking:
    """Reserve a slot if it is free; the new booking starts out pending."""
    params = {
        "facility_id": facility_id,
        "user_id": user_id,
        "booking_date": booking_date,
        "start_time": start_time,
        "end_time": end_time,
    }
    validate_time_range(start_time, end_time, facility_id=facility_id, booking_date=booking_date)
    if booking_date < clock.today():
        raise ValidationError("Cannot book a date in the past.", today=clock.today(), **params)

    with facility_locks.hold(facility_id):
        try:
            facility = _lock_facility(db, facility_id)
            _check_bookable(facility, booking_date, start_time, end_time, params)

            conflicts = find_conflicts(db, facility, booking_date, start_time, end_time)
            if conflicts:
                raise ConflictError(
                    "The requested slot is no longer available.",
                    conflicting_booking_ids=[b.booking_id for b in conflicts],
                    **params,
                )

            hours = duration_hours(start_time, end_time)
            rate = Decimal(str(facility.hourly_rate or 0))
            booking = Booking(
                facility_id=facility_id,
                user_id=user_id,
                booking_date=booking_date,
                start_time=start_time,
                end_time=end_time,
                duration_hours=hours,
                purpose=purpose,
                notes=notes,
                status=BookingStatus.pending,
                total_amount=(hours * rate).quantize(Decimal("0.01")),
                recurring_booking_id=recurring_booking_id,
            )
            db.add(booking)
            db.commit()
        except Exception:
            db.rollback()
            raise

    db.refresh(booking)
    logger.info(
        "Created booking %s for facility %s on %s %s-%s by %s",
        booking.booking_id, facility_id, booking_date, start_time, end_time, user_id,
    )
    return booking


def get_booking(db: Session, booking_id: str) -> Booking:
    booking = db.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found.", booking_id=booking_id)
    return booking


def lock_booking(db: Session, booking_id: str) -> Booking:
    """Reload a booking FOR UPDATE; call while holding its facility lock."""
    booking = booking_for_update(db, booking_id).one_or_none()
    if booking is None:
        raise NotFoundError("Booking not found.", booking_id=booking_id)
    return booking


def list_bookings(
    db: Session,
    facility_id: Optional[str] = None,
    user_id: Optional[str] = None,
    status: Optional[BookingStatus] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> list[Booking]:
    query = db.query(Booking)
    if facility_id:
        query = query.filter(Booking.facility_id == facility_id)
    if user_id:
        query = query.filter(Booking.user_id == user_id)
    if status:
        query = query.filter(Booking.status == status)
    if date_from:
        query = query.filter(Booking.booking_date >= date_from)
    if date_to:
        query = query.filter(Booking.booking_date <= date_to)
    return query.order_by(Booking.booking_date, Booking.start_time).all()


def cancel_booking(
    db: Session,
    booking_id: str,
    actor_id: str,
    role_checker: RoleChecker,
    clock: Clock,
    reason: Optional[str] = None,
) -> Booking:
    """Cancel a booking. Cancelling an already-cancelled booking is a no-op."""
    facility_id = get_booking(db, booking_id).facility_id

    with facility_locks.hold(facility_id):
        try:
            booking = lock_booking(db, booking_id)
            if booking.user_id != actor_id:
                require_role(
                    role_checker, actor_id, settings.approver_roles, booking.facility_id,
                    action="cancel another user's booking",
                )

            if booking.status == BookingStatus.cancelled:
                db.rollback()
                logger.info("Booking %s already cancelled; nothing to do", booking_id)
                return booking

            if booking.effective_status(clock.today()) == BookingStatus.completed:
                raise InvalidStateError(
                    "A completed booking cannot be cancelled.",
                    booking_id=booking_id,
                    status=BookingStatus.completed.value,
                )

            booking.status = BookingStatus.cancelled
            booking.cancelled_by = actor_id
            booking.cancelled_at = clock.now()
            booking.cancel_reason = reason
            reminder_service.deactivate_reminders(db, booking.booking_id)

            if actor_id != booking.user_id:
                notification_service.enqueue(
                    db,
                    recipient_id=booking.user_id,
                    subject="Booking Cancelled",
                    body=(
                        f"Your booking for {booking.facility.name} on {booking.booking_date:%Y-%m-%d} "
                        f"{booking.start_time:%H:%M}-{booking.end_time:%H:%M} has been cancelled."
                        + (f" Reason: {reason}" if reason else "")
                    ),
                    reference_id=booking.booking_id,
                    reference_table="bookings",
                )
            db.commit()
        except Exception:
            db.rollback()
            raise

    db.refresh(booking)
    logger.info("Cancelled booking %s by %s (reason: %s)", booking_id, actor_id, reason)
    return booking
