"""BookingReminder ORM model — a scheduled "your booking is coming up" notice."""
import uuid
import enum
from datetime import timedelta

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Index, UniqueConstraint, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class ReminderType(str, enum.Enum):
    booking_upcoming_24h = "booking_upcoming_24h"
    booking_upcoming_2h = "booking_upcoming_2h"


# How long before the booking starts each reminder is due
LEAD_TIMES = {
    ReminderType.booking_upcoming_24h: timedelta(hours=24),
    ReminderType.booking_upcoming_2h: timedelta(hours=2),
}


class BookingReminder(Base):
    __tablename__ = "booking_reminders"
    __table_args__ = (
        UniqueConstraint("booking_id", "reminder_type", name="uq_booking_reminders_type"),
        Index("ix_booking_reminders_due", "is_active", "scheduled_for"),
    )

    reminder_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_id = Column(String(36), ForeignKey("bookings.booking_id"), nullable=False, index=True)
    reminder_type = Column(SAEnum(ReminderType), nullable=False)
    scheduled_for = Column(DateTime(timezone=True), nullable=False)  # UTC
    sent_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    booking = relationship("Booking")
