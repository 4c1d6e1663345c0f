"""RecurringBooking ORM model — a recurrence rule expanded into Bookings."""
import uuid
import enum
from sqlalchemy import Column, String, Integer, Date, Time, DateTime, JSON, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from app.database import Base


class RecurrencePattern(str, enum.Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


class RuleStatus(str, enum.Enum):
    active = "active"
    paused = "paused"
    cancelled = "cancelled"


class RecurringBooking(Base):
    __tablename__ = "recurring_bookings"

    rule_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    facility_id = Column(String(36), ForeignKey("facilities.facility_id"), nullable=False)
    user_id = Column(String(36), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    purpose = Column(String(255), nullable=True)
    recurrence_pattern = Column(SAEnum(RecurrencePattern), nullable=False)
    recurrence_interval = Column(Integer, nullable=False, default=1)
    days_of_week = Column(JSON, nullable=True)  # 0=Sunday .. 6=Saturday, weekly only
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)  # open-ended when null
    status = Column(SAEnum(RuleStatus), nullable=False, default=RuleStatus.active)
    last_materialized_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
