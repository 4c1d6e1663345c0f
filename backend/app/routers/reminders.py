"""Booking reminder API routes — listing, manual send and the due-reminder job."""
import logging
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from app.clock import Clock, get_clock
from app.database import get_db, get_session_factory
from app.models.reminder import BookingReminder
from app.schemas.reminder import ReminderOut, ReminderSendRequest, ReminderDispatchOut
from app.services import notification_service, reminder_service
from app.services.authorization import RoleChecker, get_role_checker
from app.services.notification_service import Notifier, get_notifier

logger = logging.getLogger(__name__)
router = APIRouter()


def reminder_out(reminder: BookingReminder, clock: Clock) -> ReminderOut:
    out = ReminderOut.model_validate(reminder)
    out.state = reminder_service.reminder_state(reminder, clock)
    return out


@router.get("/", response_model=list[ReminderOut])
def list_reminders(
    booking_id: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    reminders = reminder_service.list_reminders(db, clock, booking_id=booking_id, state=state)
    return [reminder_out(r, clock) for r in reminders]


@router.post("/dispatch-due", response_model=ReminderDispatchOut)
def dispatch_due(
    background_tasks: BackgroundTasks,
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
    session_factory=Depends(get_session_factory),
):
    """Scheduled-job hook: stage every due reminder, then deliver after the response."""
    result = reminder_service.dispatch_due_reminders(db, clock, limit)
    background_tasks.add_task(notification_service.dispatch_after_response, session_factory, notifier)
    return result


@router.post("/{reminder_id}/send", response_model=ReminderOut)
def send_reminder(
    reminder_id: str,
    payload: ReminderSendRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    role_checker: RoleChecker = Depends(get_role_checker),
    notifier: Notifier = Depends(get_notifier),
    session_factory=Depends(get_session_factory),
):
    reminder = reminder_service.send_reminder(db, reminder_id, payload.actor_user_id, role_checker, clock)
    background_tasks.add_task(notification_service.dispatch_after_response, session_factory, notifier)
    return reminder_out(reminder, clock)
