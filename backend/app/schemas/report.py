"""Pydantic schemas for usage reports."""
from datetime import date
from decimal import Decimal
from pydantic import BaseModel


class PeakHourOut(BaseModel):
    hour: str  # "HH:00"
    bookings: int


class UsageReportOut(BaseModel):
    facility_id: str
    facility_name: str
    date_from: date
    date_to: date
    total_bookings: int
    total_hours: Decimal
    total_revenue: Decimal
    available_hours: Decimal
    occupancy_rate: Decimal
    peak_hours: list[PeakHourOut] = []
