"""Booking ORM model — one concrete, dated reservation of a facility."""
import uuid
import enum
from datetime import date

from sqlalchemy import (
    Column, String, Text, Date, Time, Numeric, DateTime, ForeignKey, Index, UniqueConstraint,
    Enum as SAEnum,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class BookingStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"


# Statuses that hold a slot
ACTIVE_STATUSES = (BookingStatus.pending, BookingStatus.confirmed)


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_facility_date_status", "facility_id", "booking_date", "status"),
        UniqueConstraint("recurring_booking_id", "booking_date", name="uq_bookings_rule_date"),
    )

    booking_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    facility_id = Column(String(36), ForeignKey("facilities.facility_id"), nullable=False)
    user_id = Column(String(36), nullable=False, index=True)
    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    duration_hours = Column(Numeric(5, 2), nullable=False)
    purpose = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(SAEnum(BookingStatus), nullable=False, default=BookingStatus.pending)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    recurring_booking_id = Column(String(36), ForeignKey("recurring_bookings.rule_id"), nullable=True)
    approved_by = Column(String(36), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String(36), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancel_reason = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    facility = relationship("Facility")
    approvals = relationship(
        "BookingApproval", back_populates="booking", order_by="BookingApproval.decided_at",
    )

    def is_past(self, today: date) -> bool:
        return self.booking_date < today

    def effective_status(self, today: date) -> BookingStatus:
        """A confirmed booking whose date has passed reads as completed."""
        if self.status == BookingStatus.confirmed and self.is_past(today):
            return BookingStatus.completed
        return self.status
