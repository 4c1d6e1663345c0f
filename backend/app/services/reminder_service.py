"""Booking reminders — 24 hour and 2 hour notices for confirmed bookings.

Reminders are scheduled in the same commit that confirms a booking and
deactivated in the same commit that cancels it.  A due reminder is delivered
by staging a NotificationOutbox row; the outbox dispatcher does the rest.
Times are computed in the community timezone and stored in UTC.
"""
import logging
from datetime import datetime
from typing import Optional

import pytz
from sqlalchemy.orm import Query, Session

from app.clock import Clock
from app.config import settings
from app.errors import InvalidStateError, NotFoundError, ValidationError
from app.models.booking import Booking, BookingStatus
from app.models.reminder import BookingReminder, ReminderType, LEAD_TIMES
from app.services import notification_service
from app.services.authorization import RoleChecker, require_role
from app.services.locks import reminder_locks

logger = logging.getLogger(__name__)

REMINDER_STATES = ("pending", "overdue", "sent", "inactive")


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were stored as UTC
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


def booking_starts_at(booking: Booking) -> datetime:
    """The booking's start as a UTC instant (dates and times are community-local)."""
    tz = pytz.timezone(settings.COMMUNITY_TIMEZONE)
    local = tz.localize(datetime.combine(booking.booking_date, booking.start_time))
    return local.astimezone(pytz.utc)


def reminder_state(reminder: BookingReminder, clock: Clock) -> str:
    if reminder.sent_at is not None:
        return "sent"
    if not reminder.is_active:
        return "inactive"
    if _as_utc(reminder.scheduled_for) < _as_utc(clock.now()):
        return "overdue"
    return "pending"


def schedule_reminders(db: Session, booking: Booking, clock: Clock) -> list[BookingReminder]:
    """Stage the reminders still in the future for a just-confirmed booking. Does not commit."""
    now = _as_utc(clock.now())
    starts_at = booking_starts_at(booking)
    scheduled = []
    for reminder_type, lead in LEAD_TIMES.items():
        due = starts_at - lead
        if due <= now:
            continue
        reminder = BookingReminder(booking_id=booking.booking_id, reminder_type=reminder_type, scheduled_for=due)
        db.add(reminder)
        scheduled.append(reminder)
    logger.debug("Scheduled %d reminders for booking %s", len(scheduled), booking.booking_id)
    return scheduled


def deactivate_reminders(db: Session, booking_id: str) -> int:
    """Switch off the unsent reminders of a booking. Does not commit."""
    reminders = (
        db.query(BookingReminder)
        .filter(
            BookingReminder.booking_id == booking_id,
            BookingReminder.is_active.is_(True),
            BookingReminder.sent_at.is_(None),
        )
        .all()
    )
    for reminder in reminders:
        reminder.is_active = False
    return len(reminders)


def list_reminders(
    db: Session,
    clock: Clock,
    booking_id: Optional[str] = None,
    state: Optional[str] = None,
) -> list[BookingReminder]:
    if state is not None and state not in REMINDER_STATES:
        raise ValidationError(f"State must be one of {', '.join(REMINDER_STATES)}.", state=state)
    query = db.query(BookingReminder)
    if booking_id:
        query = query.filter(BookingReminder.booking_id == booking_id)
    reminders = query.order_by(BookingReminder.scheduled_for).all()
    if state is not None:
        reminders = [r for r in reminders if reminder_state(r, clock) == state]
    return reminders


def reminder_for_update(db: Session, reminder_id: str) -> Query:
    return (
        db.query(BookingReminder)
        .filter(BookingReminder.reminder_id == reminder_id)
        .populate_existing()
        .with_for_update()
    )


def _message(reminder: BookingReminder) -> tuple[str, str]:
    booking = reminder.booking
    name = booking.facility.name
    if reminder.reminder_type == ReminderType.booking_upcoming_24h:
        subject = f"Reminder: {name} booking tomorrow"
    else:
        subject = f"Starting soon: {name} booking in 2 hours"
    body = (
        f"Your booking for {name} is scheduled for {booking.booking_date:%Y-%m-%d} "
        f"from {booking.start_time:%H:%M} to {booking.end_time:%H:%M}."
    )
    return subject, body


def _no_longer_upcoming(reminder: BookingReminder, now: datetime) -> Optional[str]:
    booking = reminder.booking
    if booking.status != BookingStatus.confirmed:
        return f"booking is {booking.status.value}"
    if booking_starts_at(booking) <= now:
        return "booking has already started"
    return None


def _deliver(db: Session, reminder: BookingReminder, now: datetime) -> None:
    subject, body = _message(reminder)
    notification_service.enqueue(
        db,
        recipient_id=reminder.booking.user_id,
        subject=subject,
        body=body,
        reference_id=reminder.booking_id,
        reference_table="bookings",
    )
    reminder.sent_at = now


def send_reminder(
    db: Session,
    reminder_id: str,
    actor_id: str,
    role_checker: RoleChecker,
    clock: Clock,
) -> BookingReminder:
    """Send one reminder now, ahead of its schedule if need be."""
    with reminder_locks.hold(reminder_id):
        try:
            reminder = reminder_for_update(db, reminder_id).one_or_none()
            if reminder is None:
                raise NotFoundError("Reminder not found.", reminder_id=reminder_id)
            require_role(
                role_checker, actor_id, settings.approver_roles, reminder.booking.facility_id,
                action="send booking reminders for this facility",
            )
            if reminder.sent_at is not None or not reminder.is_active:
                raise InvalidStateError(
                    "Reminder has already been sent or was switched off.",
                    reminder_id=reminder_id,
                    state="sent" if reminder.sent_at is not None else "inactive",
                )
            now = _as_utc(clock.now())
            reason = _no_longer_upcoming(reminder, now)
            if reason:
                raise InvalidStateError(f"Reminder cannot be sent: {reason}.", reminder_id=reminder_id)
            _deliver(db, reminder, now)
            db.commit()
        except Exception:
            db.rollback()
            raise

    db.refresh(reminder)
    logger.info("Reminder %s for booking %s sent by %s", reminder_id, reminder.booking_id, actor_id)
    return reminder


def dispatch_due_reminders(db: Session, clock: Clock, limit: Optional[int] = None) -> dict[str, int]:
    """Scheduled-job hook: deliver every active reminder whose time has come.

    Reminders whose booking is no longer confirmed, or has already started,
    are switched off instead of sent.
    """
    now = _as_utc(clock.now())
    due_ids = [
        reminder_id for (reminder_id,) in (
            db.query(BookingReminder.reminder_id)
            .filter(
                BookingReminder.is_active.is_(True),
                BookingReminder.sent_at.is_(None),
                BookingReminder.scheduled_for <= now,
            )
            .order_by(BookingReminder.scheduled_for)
            .limit(limit or settings.NOTIFICATION_BATCH_SIZE)
            .all()
        )
    ]

    sent = deactivated = 0
    for reminder_id in due_ids:
        with reminder_locks.hold(reminder_id):
            try:
                reminder = reminder_for_update(db, reminder_id).one()
                if reminder.sent_at is not None or not reminder.is_active:
                    db.rollback()
                    continue
                reason = _no_longer_upcoming(reminder, now)
                if reason:
                    reminder.is_active = False
                    deactivated += 1
                    logger.info("Reminder %s switched off: %s", reminder_id, reason)
                else:
                    _deliver(db, reminder, now)
                    sent += 1
                db.commit()
            except Exception:
                db.rollback()
                raise

    if due_ids:
        logger.info("Reminder run: %d sent, %d switched off", sent, deactivated)
    return {"sent": sent, "deactivated": deactivated}
