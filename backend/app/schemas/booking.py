"""Pydantic schemas for Bookings and approval decisions."""
from __future__ import annotations
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel


class BookingCreate(BaseModel):
    facility_id: str
    user_id: str
    booking_date: date
    start_time: time
    end_time: time
    purpose: Optional[str] = None
    notes: Optional[str] = None


class BookingOut(BaseModel):
    booking_id: str
    facility_id: str
    user_id: str
    booking_date: date
    start_time: time
    end_time: time
    duration_hours: Decimal
    purpose: Optional[str] = None
    notes: Optional[str] = None
    status: str
    display_status: Optional[str] = None  # "completed" once a confirmed date has passed
    total_amount: Decimal
    recurring_booking_id: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingCancelRequest(BaseModel):
    cancelled_by_user_id: str
    cancel_reason: Optional[str] = None


class DecisionRequest(BaseModel):
    approver_id: str
    decision: str  # approved, rejected
    notes: Optional[str] = None


class ApprovalOut(BaseModel):
    approval_id: str
    booking_id: str
    approver_id: str
    decision: str
    notes: Optional[str] = None
    decided_at: datetime

    model_config = {"from_attributes": True}
