"""Approval API routes — the approver's queue and decisions."""
import logging
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from app.clock import Clock, get_clock
from app.database import get_db, get_session_factory
from app.routers.bookings import booking_out
from app.schemas.booking import BookingOut, DecisionRequest, ApprovalOut
from app.services import approval_service, notification_service
from app.services.authorization import RoleChecker, get_role_checker
from app.services.notification_service import Notifier, get_notifier

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/pending", response_model=list[BookingOut])
def list_pending(
    facility_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return [booking_out(b, clock) for b in approval_service.list_pending(db, facility_id)]


@router.post("/{booking_id}/decide", response_model=BookingOut)
def decide(
    booking_id: str,
    payload: DecisionRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    role_checker: RoleChecker = Depends(get_role_checker),
    notifier: Notifier = Depends(get_notifier),
    session_factory=Depends(get_session_factory),
):
    """Approve or reject a pending booking; the requester is notified after the response."""
    booking = approval_service.decide(
        db,
        booking_id,
        approver_id=payload.approver_id,
        decision=payload.decision,
        role_checker=role_checker,
        clock=clock,
        notes=payload.notes,
    )
    background_tasks.add_task(notification_service.dispatch_after_response, session_factory, notifier)
    return booking_out(booking, clock)


@router.get("/{booking_id}/history", response_model=list[ApprovalOut])
def approval_history(booking_id: str, db: Session = Depends(get_db)):
    return approval_service.approval_history(db, booking_id)
