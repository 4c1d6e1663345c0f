"""Notification outbox and dispatcher.

Domain writes enqueue NotificationOutbox rows in their own transaction; a
separate dispatcher delivers them through a Notifier.  Delivery is
best-effort: a failure is logged and recorded on the row, never raised back
into the operation that produced the notification, and never retried inline.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from sqlalchemy.orm import Session

from app.config import settings
from app.models.notification import NotificationOutbox, OutboxStatus

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, recipient_id: str, subject: str, body: str, reference_id: Optional[str]) -> None: ...


class LoggingNotifier:
    """Default transport — writes the notification to the application log."""

    def notify(self, recipient_id: str, subject: str, body: str, reference_id: Optional[str]) -> None:
        logger.info("Notify %s [%s] %s (ref=%s)", recipient_id, subject, body, reference_id)


_default_notifier = LoggingNotifier()


def get_notifier() -> Notifier:
    """FastAPI dependency — overridden in tests with a recording notifier."""
    return _default_notifier


def enqueue(
    db: Session,
    recipient_id: str,
    subject: str,
    body: str,
    reference_id: Optional[str] = None,
    reference_table: Optional[str] = None,
) -> NotificationOutbox:
    """Stage a notification in the caller's transaction (no commit)."""
    entry = NotificationOutbox(
        recipient_id=recipient_id,
        subject=subject,
        body=body,
        reference_id=reference_id,
        reference_table=reference_table,
        status=OutboxStatus.pending,
        attempts=0,
    )
    db.add(entry)
    return entry


def dispatch_pending(db: Session, notifier: Notifier, limit: Optional[int] = None) -> dict[str, int]:
    """Deliver pending outbox entries, oldest first. Returns sent/failed counts."""
    entries = (
        db.query(NotificationOutbox)
        .filter(NotificationOutbox.status == OutboxStatus.pending)
        .order_by(NotificationOutbox.created_at)
        .limit(limit or settings.NOTIFICATION_BATCH_SIZE)
        .all()
    )
    sent = failed = 0
    for entry in entries:
        entry.attempts += 1
        try:
            notifier.notify(entry.recipient_id, entry.subject, entry.body, entry.reference_id)
        except Exception as exc:  # delivery is best-effort
            entry.status = OutboxStatus.failed
            entry.last_error = str(exc)[:1000]
            failed += 1
            logger.warning(
                "Notification %s to %s failed: %s", entry.notification_id, entry.recipient_id, exc,
            )
        else:
            entry.status = OutboxStatus.sent
            entry.sent_at = datetime.now(timezone.utc)
            sent += 1
        db.commit()

    if entries:
        logger.info("Dispatched %d notifications (%d sent, %d failed)", len(entries), sent, failed)
    return {"sent": sent, "failed": failed}


def dispatch_after_response(session_factory: Callable[[], Session], notifier: Notifier) -> None:
    """BackgroundTasks entry point — runs on its own session, since the request's is closed by now.

    A failed run is logged and the rows stay pending.
    """
    db = session_factory()
    try:
        dispatch_pending(db, notifier)
    except Exception:
        db.rollback()
        logger.exception("Notification dispatch run failed")
    finally:
        db.close()
