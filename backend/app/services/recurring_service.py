"""Recurring booking rules — lifecycle and materialization into Bookings.

- Lifecycle: active ⇄ paused → cancelled (terminal, soft). Owner or approver only.
- Materialization walks the rule's occurrences after its cursor
  (`last_materialized_date`, never before today) and books each through the
  regular reserve-if-free path.  An occurrence that conflicts or falls on a
  closed day is skipped and logged; the rule carries on with the next one.
- One materialization per rule at a time (per-rule lock), backed by the
  unique (recurring_booking_id, booking_date) constraint.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.clock import Clock
from app.config import settings
from app.errors import BookingError, ConflictError, InvalidStateError, NotFoundError, ValidationError
from app.models.booking import Booking
from app.models.recurring_booking import RecurringBooking, RecurrencePattern, RuleStatus
from app.services import booking_service
from app.services.authorization import RoleChecker, require_role
from app.services.conflict_service import get_facility
from app.services.locks import rule_locks
from app.services.recurrence import Occurrence, iter_occurrences, validate_rule

logger = logging.getLogger(__name__)

# Upper bound on occurrences examined by a single materialize_next call, so a
# rule whose every future date is unbookable cannot spin forever.
MAX_OCCURRENCES_PER_RUN = 366


@dataclass
class SkippedOccurrence:
    date: date
    reason: str
    message: str


@dataclass
class MaterializationResult:
    rule_id: str
    created: list[Booking] = field(default_factory=list)
    skipped: list[SkippedOccurrence] = field(default_factory=list)
    exhausted: bool = False


def create_rule(
    db: Session,
    facility_id: str,
    user_id: str,
    title: str,
    recurrence_pattern: str,
    start_time: time,
    end_time: time,
    start_date: date,
    recurrence_interval: int = 1,
    days_of_week: Optional[Iterable[int]] = None,
    end_date: Optional[date] = None,
    purpose: Optional[str] = None,
) -> RecurringBooking:
    get_facility(db, facility_id)
    try:
        pattern = RecurrencePattern(recurrence_pattern)
    except ValueError:
        raise ValidationError(
            "Recurrence pattern must be daily, weekly or monthly.",
            recurrence_pattern=recurrence_pattern,
        ) from None

    rule = RecurringBooking(
        facility_id=facility_id,
        user_id=user_id,
        title=title,
        purpose=purpose,
        recurrence_pattern=pattern,
        recurrence_interval=recurrence_interval,
        days_of_week=sorted(set(days_of_week or [])) if pattern == RecurrencePattern.weekly else None,
        start_time=start_time,
        end_time=end_time,
        start_date=start_date,
        end_date=end_date,
        status=RuleStatus.active,
    )
    validate_rule(rule)
    db.add(rule)
    db.commit()
    db.refresh(rule)
    logger.info(
        "Created %s recurring rule %s (every %d) for facility %s by %s",
        pattern.value, rule.rule_id, recurrence_interval, facility_id, user_id,
    )
    return rule


def get_rule(db: Session, rule_id: str) -> RecurringBooking:
    rule = db.get(RecurringBooking, rule_id)
    if rule is None:
        raise NotFoundError("Recurring booking not found.", rule_id=rule_id)
    return rule


def _reload_rule(db: Session, rule_id: str) -> RecurringBooking:
    rule = (
        db.query(RecurringBooking)
        .filter(RecurringBooking.rule_id == rule_id)
        .populate_existing()
        .one_or_none()
    )
    if rule is None:
        raise NotFoundError("Recurring booking not found.", rule_id=rule_id)
    return rule


def list_rules(
    db: Session,
    facility_id: Optional[str] = None,
    user_id: Optional[str] = None,
    include_cancelled: bool = False,
) -> list[RecurringBooking]:
    query = db.query(RecurringBooking)
    if facility_id:
        query = query.filter(RecurringBooking.facility_id == facility_id)
    if user_id:
        query = query.filter(RecurringBooking.user_id == user_id)
    if not include_cancelled:
        query = query.filter(RecurringBooking.status != RuleStatus.cancelled)
    return query.order_by(RecurringBooking.created_at.desc()).all()


def _transition(
    db: Session,
    rule_id: str,
    actor_id: str,
    role_checker: RoleChecker,
    allowed_from: tuple[RuleStatus, ...],
    target: RuleStatus,
) -> RecurringBooking:
    with rule_locks.hold(rule_id):
        rule = _reload_rule(db, rule_id)
        if rule.user_id != actor_id:
            require_role(
                role_checker, actor_id, settings.approver_roles, rule.facility_id,
                action=f"change another user's recurring booking to {target.value}",
            )
        if rule.status not in allowed_from:
            raise InvalidStateError(
                f"Cannot move a {rule.status.value} recurring booking to {target.value}.",
                rule_id=rule_id,
                status=rule.status.value,
                target=target.value,
            )
        previous = rule.status
        rule.status = target
        db.commit()
    db.refresh(rule)
    logger.info("Recurring rule %s: %s -> %s by %s", rule_id, previous.value, target.value, actor_id)
    return rule


def pause_rule(db: Session, rule_id: str, actor_id: str, role_checker: RoleChecker) -> RecurringBooking:
    return _transition(db, rule_id, actor_id, role_checker, (RuleStatus.active,), RuleStatus.paused)


def resume_rule(db: Session, rule_id: str, actor_id: str, role_checker: RoleChecker) -> RecurringBooking:
    return _transition(db, rule_id, actor_id, role_checker, (RuleStatus.paused,), RuleStatus.active)


def cancel_rule(db: Session, rule_id: str, actor_id: str, role_checker: RoleChecker) -> RecurringBooking:
    """Terminal; bookings already materialized from the rule are left as they are."""
    return _transition(
        db, rule_id, actor_id, role_checker, (RuleStatus.active, RuleStatus.paused), RuleStatus.cancelled,
    )


def _materialize_one(db: Session, rule: RecurringBooking, occurrence: Occurrence, clock: Clock,
                     result: MaterializationResult) -> Optional[Booking]:
    booking = None
    try:
        booking = booking_service.create_booking(
            db,
            facility_id=rule.facility_id,
            user_id=rule.user_id,
            booking_date=occurrence.date,
            start_time=occurrence.start_time,
            end_time=occurrence.end_time,
            clock=clock,
            purpose=rule.purpose or rule.title,
            notes=f"Recurring booking: {rule.title}",
            recurring_booking_id=rule.rule_id,
        )
    except (ConflictError, ValidationError) as exc:
        logger.warning("Skipping occurrence %s of rule %s: %s", occurrence.date, rule.rule_id, exc.message)
        result.skipped.append(SkippedOccurrence(occurrence.date, exc.kind, exc.message))
    except IntegrityError:
        logger.warning("Occurrence %s of rule %s already materialized", occurrence.date, rule.rule_id)
        result.skipped.append(SkippedOccurrence(occurrence.date, "duplicate", "Occurrence already materialized."))
    else:
        result.created.append(booking)

    rule.last_materialized_date = occurrence.date
    db.commit()
    return booking


def _materialize(
    db: Session,
    rule_id: str,
    clock: Clock,
    until: Optional[date] = None,
    first_only: bool = False,
) -> MaterializationResult:
    with rule_locks.hold(rule_id):
        rule = _reload_rule(db, rule_id)
        if rule.status != RuleStatus.active:
            raise InvalidStateError(
                f"Recurring booking is {rule.status.value}; only active rules materialize.",
                rule_id=rule_id,
                status=rule.status.value,
            )

        result = MaterializationResult(rule_id=rule.rule_id)
        from_date = clock.today()
        if rule.last_materialized_date is not None:
            from_date = max(from_date, rule.last_materialized_date + timedelta(days=1))

        examined = 0
        for occurrence in iter_occurrences(rule, from_date=from_date):
            if until is not None and occurrence.date > until:
                break
            if examined >= MAX_OCCURRENCES_PER_RUN:
                break
            examined += 1
            booking = _materialize_one(db, rule, occurrence, clock, result)
            if booking is not None and first_only:
                break
        else:
            result.exhausted = True

    logger.info(
        "Materialized rule %s: %d created, %d skipped%s",
        rule_id, len(result.created), len(result.skipped), " (exhausted)" if result.exhausted else "",
    )
    return result


def materialize_next(db: Session, rule_id: str, clock: Clock) -> MaterializationResult:
    """Book the next bookable occurrence, skipping any that conflict."""
    return _materialize(db, rule_id, clock, first_only=True)


def materialize_until(db: Session, rule_id: str, until: date, clock: Clock) -> MaterializationResult:
    """Book every occurrence up to and including `until`."""
    return _materialize(db, rule_id, clock, until=until)


def materialize_due_rules(
    db: Session,
    clock: Clock,
    horizon_days: Optional[int] = None,
) -> list[MaterializationResult]:
    """Scheduled job: keep every active rule materialized up to the horizon."""
    horizon = clock.today() + timedelta(days=settings.RECURRENCE_HORIZON_DAYS if horizon_days is None else horizon_days)
    rule_ids = [
        rule_id for (rule_id,) in
        db.query(RecurringBooking.rule_id).filter(RecurringBooking.status == RuleStatus.active).all()
    ]
    results = []
    for rule_id in rule_ids:
        try:
            results.append(materialize_until(db, rule_id, horizon, clock))
        except BookingError as exc:
            # Paused or cancelled since the rule list was read
            logger.info("Rule %s not materialized: %s", rule_id, exc.message)
    return results
