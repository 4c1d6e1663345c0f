"""Pydantic schemas for Facilities."""
from __future__ import annotations
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.facility import WEEKDAY_NAMES


class OperatingDay(BaseModel):
    start: str = "08:00"
    end: str = "22:00"
    closed: bool = False

    @model_validator(mode="after")
    def check_window(self) -> "OperatingDay":
        opens, closes = time.fromisoformat(self.start), time.fromisoformat(self.end)
        if not self.closed and opens >= closes:
            raise ValueError("opening time must be before closing time")
        return self


def _operating_hours(value: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if value is None:
        return None
    unknown = set(value) - set(WEEKDAY_NAMES)
    if unknown:
        raise ValueError(f"unknown weekday(s): {', '.join(sorted(unknown))}")
    days = {day: OperatingDay.model_validate(entry) for day, entry in value.items()}
    # Days left out are closed
    return {
        day: days[day].model_dump() if day in days else {"start": "00:00", "end": "00:00", "closed": True}
        for day in WEEKDAY_NAMES
    }


class FacilityCreate(BaseModel):
    name: str
    created_by: str
    description: Optional[str] = None
    location: Optional[str] = None
    capacity: int = Field(1, ge=1)
    hourly_rate: Decimal = Field(Decimal("0"), ge=0)
    is_available: bool = True
    operating_hours: Optional[dict[str, Any]] = None
    amenities: list[str] = []
    rules: list[str] = []
    buffer_before_minutes: int = Field(0, ge=0)
    buffer_after_minutes: int = Field(0, ge=0)

    @field_validator("operating_hours")
    @classmethod
    def check_operating_hours(cls, v):
        return _operating_hours(v)


class FacilityUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)
    hourly_rate: Optional[Decimal] = Field(None, ge=0)
    is_available: Optional[bool] = None
    operating_hours: Optional[dict[str, Any]] = None
    amenities: Optional[list[str]] = None
    rules: Optional[list[str]] = None
    buffer_before_minutes: Optional[int] = Field(None, ge=0)
    buffer_after_minutes: Optional[int] = Field(None, ge=0)

    @field_validator("operating_hours")
    @classmethod
    def check_operating_hours(cls, v):
        return _operating_hours(v)


class FacilityOut(BaseModel):
    facility_id: str
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    capacity: int
    hourly_rate: Decimal
    is_available: bool
    operating_hours: dict[str, Any]
    amenities: list[str] = []
    rules: list[str] = []
    buffer_before_minutes: int
    buffer_after_minutes: int
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SlotOut(BaseModel):
    start: time
    end: time
    is_available: bool
    booking_id: Optional[str] = None


class ConflictCheckOut(BaseModel):
    facility_id: str
    booking_date: date
    start_time: time
    end_time: time
    has_conflict: bool
    conflicting_booking_ids: list[str] = []
