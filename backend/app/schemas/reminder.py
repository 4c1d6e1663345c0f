"""Pydantic schemas for booking reminders."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class ReminderOut(BaseModel):
    reminder_id: str
    booking_id: str
    reminder_type: str
    scheduled_for: datetime
    sent_at: Optional[datetime] = None
    is_active: bool
    state: Optional[str] = None  # pending, overdue, sent, inactive
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ReminderSendRequest(BaseModel):
    actor_user_id: str


class ReminderDispatchOut(BaseModel):
    sent: int
    deactivated: int
