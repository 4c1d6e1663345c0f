"""Recurring booking API routes — rule lifecycle, preview and materialization."""
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.clock import Clock, get_clock
from app.database import get_db
from app.schemas.recurring_booking import (
    RecurringBookingCreate, RecurringBookingOut, RuleActionRequest, OccurrenceOut, MaterializationOut,
)
from app.services import recurring_service
from app.services.authorization import RoleChecker, get_role_checker
from app.services.recurrence import next_occurrences

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=RecurringBookingOut, status_code=status.HTTP_201_CREATED)
def create_rule(payload: RecurringBookingCreate, db: Session = Depends(get_db)):
    """Create an active recurring rule; occurrences are booked on materialization."""
    return recurring_service.create_rule(db, **payload.model_dump())


@router.get("/", response_model=list[RecurringBookingOut])
def list_rules(
    facility_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    include_cancelled: bool = Query(False),
    db: Session = Depends(get_db),
):
    return recurring_service.list_rules(
        db, facility_id=facility_id, user_id=user_id, include_cancelled=include_cancelled,
    )


@router.post("/materialize-due", response_model=list[MaterializationOut])
def materialize_due(
    horizon_days: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Scheduled-job hook: book every active rule up to the horizon."""
    results = recurring_service.materialize_due_rules(db, clock, horizon_days)
    return [MaterializationOut.model_validate(r) for r in results]


@router.get("/{rule_id}", response_model=RecurringBookingOut)
def get_rule(rule_id: str, db: Session = Depends(get_db)):
    return recurring_service.get_rule(db, rule_id)


@router.get("/{rule_id}/occurrences", response_model=list[OccurrenceOut])
def preview_occurrences(
    rule_id: str,
    count: Optional[int] = Query(None, ge=0, le=500),
    until: Optional[date] = Query(None),
    from_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
):
    """Expand the rule without booking anything."""
    rule = recurring_service.get_rule(db, rule_id)
    if count is None and until is None and rule.end_date is None:
        count = 10
    return [
        OccurrenceOut(date=o.date, start_time=o.start_time, end_time=o.end_time)
        for o in next_occurrences(rule, count=count, until=until, from_date=from_date)
    ]


@router.post("/{rule_id}/pause", response_model=RecurringBookingOut)
def pause_rule(
    rule_id: str,
    payload: RuleActionRequest,
    db: Session = Depends(get_db),
    role_checker: RoleChecker = Depends(get_role_checker),
):
    return recurring_service.pause_rule(db, rule_id, payload.actor_user_id, role_checker)


@router.post("/{rule_id}/resume", response_model=RecurringBookingOut)
def resume_rule(
    rule_id: str,
    payload: RuleActionRequest,
    db: Session = Depends(get_db),
    role_checker: RoleChecker = Depends(get_role_checker),
):
    return recurring_service.resume_rule(db, rule_id, payload.actor_user_id, role_checker)


@router.post("/{rule_id}/cancel", response_model=RecurringBookingOut)
def cancel_rule(
    rule_id: str,
    payload: RuleActionRequest,
    db: Session = Depends(get_db),
    role_checker: RoleChecker = Depends(get_role_checker),
):
    """Soft-cancel the rule; bookings it already produced are kept."""
    return recurring_service.cancel_rule(db, rule_id, payload.actor_user_id, role_checker)


@router.post("/{rule_id}/materialize", response_model=MaterializationOut)
def materialize_next(rule_id: str, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    """Book the next occurrence, skipping any that conflict."""
    return MaterializationOut.model_validate(recurring_service.materialize_next(db, rule_id, clock))
