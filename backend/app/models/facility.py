"""Facility ORM model — the bookable resource registry."""
import uuid
from datetime import date, time
from typing import Optional

from sqlalchemy import Column, String, Text, Integer, Numeric, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from app.database import Base

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def default_operating_hours() -> dict:
    return {day: {"start": "08:00", "end": "22:00", "closed": False} for day in WEEKDAY_NAMES}


class Facility(Base):
    __tablename__ = "facilities"

    facility_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    capacity = Column(Integer, nullable=False, default=1)
    hourly_rate = Column(Numeric(10, 2), nullable=False, default=0)
    is_available = Column(Boolean, nullable=False, default=True)
    operating_hours = Column(JSON, nullable=False, default=default_operating_hours)
    amenities = Column(JSON, nullable=False, default=list)
    rules = Column(JSON, nullable=False, default=list)
    buffer_before_minutes = Column(Integer, nullable=False, default=0)
    buffer_after_minutes = Column(Integer, nullable=False, default=0)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def hours_for(self, day: date) -> Optional[tuple[time, time]]:
        """Return (open, close) for the given date, or None when closed."""
        entry = (self.operating_hours or {}).get(WEEKDAY_NAMES[day.weekday()])
        if not entry or entry.get("closed"):
            return None
        return time.fromisoformat(entry["start"]), time.fromisoformat(entry["end"])
