"""Facility registry — manager-only writes, soft-disable instead of delete."""
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.errors import ValidationError
from app.models.facility import Facility, default_operating_hours
from app.services.authorization import RoleChecker, require_role
from app.services.booking_service import facility_for_update
from app.services.conflict_service import get_facility
from app.services.locks import facility_locks

logger = logging.getLogger(__name__)

_IMMUTABLE = ("facility_id", "created_by", "created_at", "updated_at")


def _check_values(values: dict[str, Any]) -> None:
    if "capacity" in values and (values["capacity"] is None or values["capacity"] < 1):
        raise ValidationError("Capacity must be a positive integer.", capacity=values["capacity"])
    if "hourly_rate" in values and (values["hourly_rate"] is None or values["hourly_rate"] < 0):
        raise ValidationError("Hourly rate must not be negative.", hourly_rate=values["hourly_rate"])
    for key in ("buffer_before_minutes", "buffer_after_minutes"):
        if key in values and (values[key] is None or values[key] < 0):
            raise ValidationError("Buffer times must not be negative.", **{key: values[key]})


def create_facility(db: Session, actor_id: str, role_checker: RoleChecker, **values: Any) -> Facility:
    require_role(role_checker, actor_id, settings.facility_manager_roles, action="create facilities")
    _check_values(values)
    if not values.get("operating_hours"):
        values["operating_hours"] = default_operating_hours()

    facility = Facility(created_by=actor_id, **values)
    db.add(facility)
    db.commit()
    db.refresh(facility)
    logger.info("Created facility %s (%s) by %s", facility.facility_id, facility.name, actor_id)
    return facility


def update_facility(
    db: Session,
    facility_id: str,
    actor_id: str,
    role_checker: RoleChecker,
    updates: dict[str, Any],
) -> Facility:
    """Partial update; a rate change never touches amounts on existing bookings."""
    get_facility(db, facility_id)
    require_role(
        role_checker, actor_id, settings.facility_manager_roles, facility_id, action="edit this facility",
    )
    _check_values(updates)

    with facility_locks.hold(facility_id):
        try:
            facility = facility_for_update(db, facility_id).one()
            for field, value in updates.items():
                if hasattr(facility, field) and field not in _IMMUTABLE:
                    setattr(facility, field, value)
            db.commit()
        except Exception:
            db.rollback()
            raise

    db.refresh(facility)
    logger.info("Updated facility %s fields %s by %s", facility_id, sorted(updates), actor_id)
    return facility


def list_facilities(db: Session, available_only: bool = False, location: Optional[str] = None) -> list[Facility]:
    query = db.query(Facility)
    if available_only:
        query = query.filter(Facility.is_available.is_(True))
    if location:
        query = query.filter(Facility.location == location)
    return query.order_by(Facility.name).all()
