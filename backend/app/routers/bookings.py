"""Booking API routes — delegates to booking_service for invariant enforcement."""
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from app.clock import Clock, get_clock
from app.database import get_db, get_session_factory
from app.models.booking import Booking, BookingStatus
from app.schemas.booking import BookingCreate, BookingOut, BookingCancelRequest
from app.services import booking_service, notification_service
from app.services.authorization import RoleChecker, get_role_checker
from app.services.notification_service import Notifier, get_notifier

logger = logging.getLogger(__name__)
router = APIRouter()


def booking_out(booking: Booking, clock: Clock) -> BookingOut:
    out = BookingOut.model_validate(booking)
    out.display_status = booking.effective_status(clock.today()).value
    return out


@router.post("/", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
def create_booking(payload: BookingCreate, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    """Request a booking — 409 if the slot is taken, 422 if it is not bookable."""
    booking = booking_service.create_booking(
        db,
        facility_id=payload.facility_id,
        user_id=payload.user_id,
        booking_date=payload.booking_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        clock=clock,
        purpose=payload.purpose,
        notes=payload.notes,
    )
    return booking_out(booking, clock)


@router.get("/", response_model=list[BookingOut])
def list_bookings(
    facility_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    bookings = booking_service.list_bookings(
        db, facility_id=facility_id, user_id=user_id, status=status_filter,
        date_from=date_from, date_to=date_to,
    )
    return [booking_out(b, clock) for b in bookings]


@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: str, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    return booking_out(booking_service.get_booking(db, booking_id), clock)


@router.post("/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(
    booking_id: str,
    payload: BookingCancelRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    role_checker: RoleChecker = Depends(get_role_checker),
    notifier: Notifier = Depends(get_notifier),
    session_factory=Depends(get_session_factory),
):
    """Cancel (requester or approver). Cancelling twice is not an error."""
    booking = booking_service.cancel_booking(
        db,
        booking_id,
        actor_id=payload.cancelled_by_user_id,
        role_checker=role_checker,
        clock=clock,
        reason=payload.cancel_reason,
    )
    background_tasks.add_task(notification_service.dispatch_after_response, session_factory, notifier)
    return booking_out(booking, clock)
