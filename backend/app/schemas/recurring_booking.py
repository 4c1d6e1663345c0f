"""Pydantic schemas for recurring booking rules."""
from __future__ import annotations
import datetime as dt
from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel, Field

from app.schemas.booking import BookingOut


class RecurringBookingCreate(BaseModel):
    facility_id: str
    user_id: str
    title: str
    purpose: Optional[str] = None
    recurrence_pattern: str  # daily, weekly, monthly
    recurrence_interval: int = Field(1, ge=1)
    days_of_week: Optional[list[int]] = None  # 0=Sunday .. 6=Saturday
    start_time: time
    end_time: time
    start_date: date
    end_date: Optional[date] = None


class RecurringBookingOut(BaseModel):
    rule_id: str
    facility_id: str
    user_id: str
    title: str
    purpose: Optional[str] = None
    recurrence_pattern: str
    recurrence_interval: int
    days_of_week: Optional[list[int]] = None
    start_time: time
    end_time: time
    start_date: date
    end_date: Optional[date] = None
    status: str
    last_materialized_date: Optional[date] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RuleActionRequest(BaseModel):
    actor_user_id: str


class OccurrenceOut(BaseModel):
    date: dt.date
    start_time: time
    end_time: time


class SkippedOccurrenceOut(BaseModel):
    date: dt.date
    reason: str
    message: str

    model_config = {"from_attributes": True}


class MaterializationOut(BaseModel):
    rule_id: str
    created: list[BookingOut] = []
    skipped: list[SkippedOccurrenceOut] = []
    exhausted: bool = False

    model_config = {"from_attributes": True}
