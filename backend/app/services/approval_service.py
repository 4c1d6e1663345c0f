"""Approval workflow — pending → confirmed | cancelled.

A decision writes an approval record, moves the booking out of `pending` and
stages a notification for the requester in one commit.  Approval also
schedules the booking's reminders in that commit.  Delivering the
notification is the outbox dispatcher's job; it can fail without touching
the decision.  Once a booking has left `pending` every further decision is
rejected with InvalidStateError (double submission from a slow UI).
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.clock import Clock
from app.config import settings
from app.errors import InvalidStateError, ValidationError
from app.models.approval import ApprovalDecision, BookingApproval
from app.models.booking import Booking, BookingStatus
from app.services import notification_service, reminder_service
from app.services.authorization import RoleChecker, require_role
from app.services.booking_service import get_booking, lock_booking
from app.services.locks import facility_locks

logger = logging.getLogger(__name__)


def _decision_message(booking: Booking, decision: ApprovalDecision, notes: Optional[str]) -> tuple[str, str]:
    verb = "approved" if decision == ApprovalDecision.approved else "rejected"
    subject = f"Booking {verb.capitalize()}"
    body = (
        f"Your booking for {booking.facility.name} on {booking.booking_date:%Y-%m-%d} "
        f"{booking.start_time:%H:%M}-{booking.end_time:%H:%M} has been {verb}."
    )
    if notes:
        body += f" Note: {notes}"
    return subject, body


def decide(
    db: Session,
    booking_id: str,
    approver_id: str,
    decision: str,
    role_checker: RoleChecker,
    clock: Clock,
    notes: Optional[str] = None,
) -> Booking:
    """Approve or reject a pending booking."""
    try:
        decision = ApprovalDecision(decision)
    except ValueError:
        raise ValidationError(
            "Decision must be 'approved' or 'rejected'.",
            booking_id=booking_id,
            decision=decision,
        ) from None

    facility_id = get_booking(db, booking_id).facility_id

    with facility_locks.hold(facility_id):
        try:
            booking = lock_booking(db, booking_id)
            require_role(
                role_checker, approver_id, settings.approver_roles, booking.facility_id,
                action="decide on bookings for this facility",
            )
            if booking.status != BookingStatus.pending:
                raise InvalidStateError(
                    f"Booking is already {booking.status.value}; only pending bookings can be decided.",
                    booking_id=booking_id,
                    status=booking.status.value,
                    decision=decision.value,
                )

            now = clock.now()
            db.add(BookingApproval(
                booking_id=booking.booking_id,
                approver_id=approver_id,
                decision=decision,
                notes=notes,
                decided_at=now,
            ))

            if decision == ApprovalDecision.approved:
                booking.status = BookingStatus.confirmed
                booking.approved_by = approver_id
                booking.approved_at = now
                reminder_service.schedule_reminders(db, booking, clock)
            else:
                booking.status = BookingStatus.cancelled
                booking.cancelled_by = approver_id
                booking.cancelled_at = now
                booking.cancel_reason = notes

            subject, body = _decision_message(booking, decision, notes)
            notification_service.enqueue(
                db,
                recipient_id=booking.user_id,
                subject=subject,
                body=body,
                reference_id=booking.booking_id,
                reference_table="bookings",
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

    db.refresh(booking)
    logger.info("Booking %s %s by %s", booking_id, decision.value, approver_id)
    return booking


def list_pending(db: Session, facility_id: Optional[str] = None) -> list[Booking]:
    """The approver's queue, oldest request first."""
    query = db.query(Booking).filter(Booking.status == BookingStatus.pending)
    if facility_id:
        query = query.filter(Booking.facility_id == facility_id)
    return query.order_by(Booking.created_at, Booking.booking_date, Booking.start_time).all()


def approval_history(db: Session, booking_id: str) -> list[BookingApproval]:
    get_booking(db, booking_id)
    return (
        db.query(BookingApproval)
        .filter(BookingApproval.booking_id == booking_id)
        .order_by(BookingApproval.decided_at.desc())
        .all()
    )
