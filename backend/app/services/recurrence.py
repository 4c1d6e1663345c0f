"""Recurrence expander — rule → lazy sequence of dated occurrences.

Pure functions of (rule, window): no database, no clock.  Any object with the
RecurringBooking attributes can be expanded, persisted or not.

Weekday indices follow the client convention 0=Sunday .. 6=Saturday, and
weeks start on Sunday when counting the whole weeks a weekly interval skips.
"""
from datetime import date, datetime, time
from typing import Iterator, NamedTuple, Optional

from dateutil.relativedelta import relativedelta
from dateutil.rrule import DAILY, SU, WEEKLY, rrule

from app.errors import ValidationError
from app.models.recurring_booking import RecurrencePattern


class Occurrence(NamedTuple):
    date: date
    start_time: time
    end_time: time


def sunday_weekday(d: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return (d.weekday() + 1) % 7


def _as_datetime(d: Optional[date]) -> Optional[datetime]:
    return datetime.combine(d, time.min) if d is not None else None


def validate_rule(rule) -> None:
    params = {"recurrence_pattern": getattr(rule, "recurrence_pattern", None)}
    try:
        pattern = RecurrencePattern(rule.recurrence_pattern)
    except ValueError:
        raise ValidationError("Recurrence pattern must be daily, weekly or monthly.", **params) from None

    interval = rule.recurrence_interval
    if not isinstance(interval, int) or interval < 1:
        raise ValidationError("Recurrence interval must be a positive integer.", recurrence_interval=interval)

    if pattern == RecurrencePattern.weekly:
        days = rule.days_of_week or []
        if not days:
            raise ValidationError("Weekly recurrence requires at least one day of the week.", days_of_week=days)
        if any(not isinstance(d, int) or not 0 <= d <= 6 for d in days):
            raise ValidationError("Days of week must be integers 0 (Sunday) to 6 (Saturday).", days_of_week=days)

    if rule.start_time >= rule.end_time:
        raise ValidationError("Start time must be before end time.", start_time=rule.start_time, end_time=rule.end_time)
    if rule.end_date is not None and rule.end_date < rule.start_date:
        raise ValidationError("End date must not be before start date.", start_date=rule.start_date, end_date=rule.end_date)


def _rrule_dates(rule, from_date: date) -> Iterator[date]:
    """Daily and weekly rules; rrule counts intervals from dtstart so a late from_date keeps phase."""
    if RecurrencePattern(rule.recurrence_pattern) == RecurrencePattern.weekly:
        freq, byweekday = WEEKLY, [(d - 1) % 7 for d in sorted(set(rule.days_of_week))]
    else:
        freq, byweekday = DAILY, None
    expansion = rrule(
        freq,
        interval=rule.recurrence_interval,
        dtstart=_as_datetime(rule.start_date),
        until=_as_datetime(rule.end_date),
        byweekday=byweekday,
        wkst=SU,
    )
    for dt in expansion.xafter(_as_datetime(from_date), inc=True):
        yield dt.date()


def _monthly(start: date, interval: int, from_date: date) -> Iterator[date]:
    # relativedelta keeps start.day, clamped to shorter months
    elapsed = relativedelta(from_date, start)
    k = max(0, (elapsed.years * 12 + elapsed.months) // interval)
    while True:
        d = start + relativedelta(months=k * interval)
        if d >= from_date:
            yield d
        k += 1


def iter_occurrences(rule, from_date: Optional[date] = None) -> Iterator[Occurrence]:
    """Lazily yield occurrences on or after from_date; infinite when the rule has no end_date.

    Restarting with a later from_date keeps the rule's phase: an every-2-weeks
    rule restarted mid-cycle resumes on the weeks it would have produced anyway.
    """
    validate_rule(rule)
    pattern = RecurrencePattern(rule.recurrence_pattern)
    start = rule.start_date
    from_date = max(from_date or start, start)

    if pattern == RecurrencePattern.monthly:
        dates = _monthly(start, rule.recurrence_interval, from_date)
    else:
        dates = _rrule_dates(rule, from_date)

    for d in dates:
        if rule.end_date is not None and d > rule.end_date:
            return
        yield Occurrence(d, rule.start_time, rule.end_time)

def next_occurrences(
    rule,
    count: Optional[int] = None,
    until: Optional[date] = None,
    from_date: Optional[date] = None,
) -> list[Occurrence]:
    """Materialize a bounded prefix of the sequence (count, until or the rule's end_date)."""
    if count is None and until is None and rule.end_date is None:
        raise ValidationError("An open-ended rule needs a count or an until date to expand.", rule_id=getattr(rule, "rule_id", None))
    if count is not None and count < 0:
        raise ValidationError("Count must not be negative.", count=count)

    result: list[Occurrence] = []
    if count == 0:
        return result
    for occurrence in iter_occurrences(rule, from_date):
        if until is not None and occurrence.date > until:
            break
        result.append(occurrence)
        if count is not None and len(result) >= count:
            break
    return result
