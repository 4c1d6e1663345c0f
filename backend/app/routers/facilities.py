"""Facility API routes — registry, slot picker and conflict check."""
import logging
from datetime import date, time
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.facility import FacilityCreate, FacilityUpdate, FacilityOut, SlotOut, ConflictCheckOut
from app.services import conflict_service, facility_service
from app.services.authorization import RoleChecker, get_role_checker

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=FacilityOut, status_code=status.HTTP_201_CREATED)
def create_facility(
    payload: FacilityCreate,
    db: Session = Depends(get_db),
    role_checker: RoleChecker = Depends(get_role_checker),
):
    """Register a facility (facility managers only)."""
    values = payload.model_dump(exclude={"created_by"})
    return facility_service.create_facility(db, payload.created_by, role_checker, **values)


@router.get("/", response_model=list[FacilityOut])
def list_facilities(
    available_only: bool = Query(False),
    location: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return facility_service.list_facilities(db, available_only=available_only, location=location)


@router.get("/{facility_id}", response_model=FacilityOut)
def get_facility(facility_id: str, db: Session = Depends(get_db)):
    return conflict_service.get_facility(db, facility_id)


@router.patch("/{facility_id}", response_model=FacilityOut)
def update_facility(
    facility_id: str,
    payload: FacilityUpdate,
    actor_user_id: str = Query(..., description="ID of the manager performing the update"),
    db: Session = Depends(get_db),
    role_checker: RoleChecker = Depends(get_role_checker),
):
    """Partial update — set is_available=false to take a facility out of service."""
    return facility_service.update_facility(
        db, facility_id, actor_user_id, role_checker, payload.model_dump(exclude_unset=True),
    )


@router.get("/{facility_id}/slots", response_model=list[SlotOut])
def list_slots(
    facility_id: str,
    booking_date: date = Query(..., alias="date"),
    slot_minutes: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    """Slots across the day's operating hours, flagged free or taken."""
    return conflict_service.available_slots(db, facility_id, booking_date, slot_minutes)


@router.get("/{facility_id}/conflicts", response_model=ConflictCheckOut)
def check_conflicts(
    facility_id: str,
    booking_date: date = Query(..., alias="date"),
    start_time: time = Query(...),
    end_time: time = Query(...),
    exclude_booking_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    facility = conflict_service.get_facility(db, facility_id)
    conflicts = conflict_service.find_conflicts(
        db, facility, booking_date, start_time, end_time, exclude_booking_id,
    )
    return ConflictCheckOut(
        facility_id=facility_id,
        booking_date=booking_date,
        start_time=start_time,
        end_time=end_time,
        has_conflict=bool(conflicts),
        conflicting_booking_ids=[b.booking_id for b in conflicts],
    )
