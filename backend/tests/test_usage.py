"""Tests for the usage aggregator."""
from datetime import date, datetime, time
from decimal import Decimal

import pytest
import pytz

from app.errors import ValidationError
from app.services import approval_service, booking_service, usage_service
from tests.conftest import make_facility, create_test_facility, create_test_booking, APPROVER, RESIDENT

WEEK_START, WEEK_END = date(2024, 1, 1), date(2024, 1, 7)


def _book(db, clock, facility, booking_date, start, end, approve=True, roles=None):
    booking = booking_service.create_booking(
        db, facility_id=facility.facility_id, user_id=RESIDENT, booking_date=booking_date,
        start_time=start, end_time=end, clock=clock,
    )
    if approve:
        booking = approval_service.decide(db, booking.booking_id, APPROVER, "approved", roles, clock)
    return booking


class TestFacilityUsage:

    def test_counts_only_confirmed_and_completed(self, db, clock, roles):
        facility = make_facility(db, hourly_rate="50.00")
        _book(db, clock, facility, date(2024, 1, 2), time(10), time(12), roles=roles)
        _book(db, clock, facility, date(2024, 1, 3), time(10), time(11), roles=roles)
        _book(db, clock, facility, date(2024, 1, 4), time(10), time(11), approve=False)
        rejected = _book(db, clock, facility, date(2024, 1, 5), time(10), time(11), approve=False)
        approval_service.decide(db, rejected.booking_id, APPROVER, "rejected", roles, clock)

        report = usage_service.facility_usage(db, facility.facility_id, WEEK_START, WEEK_END)
        assert report["total_bookings"] == 2
        assert report["total_hours"] == Decimal("3.00")
        assert report["total_revenue"] == Decimal("150.00")
        assert report["available_hours"] == Decimal("98.00")  # 14h x 7 days
        assert report["occupancy_rate"] == Decimal("0.0306")
        assert report["peak_hours"] == [{"hour": "10:00", "bookings": 2}]

    def test_revenue_uses_stored_amounts(self, db, clock, roles):
        facility = make_facility(db, hourly_rate="50.00")
        _book(db, clock, facility, date(2024, 1, 2), time(10), time(12), roles=roles)
        facility.hourly_rate = Decimal("200.00")
        db.commit()
        _book(db, clock, facility, date(2024, 1, 3), time(10), time(11), roles=roles)

        report = usage_service.facility_usage(db, facility.facility_id, WEEK_START, WEEK_END)
        assert report["total_revenue"] == Decimal("300.00")

    def test_completed_bookings_still_reported(self, db, clock, roles):
        facility = make_facility(db)
        _book(db, clock, facility, date(2024, 1, 2), time(9), time(10), roles=roles)
        clock.instant = pytz.utc.localize(datetime(2024, 2, 1, 9, 0))
        report = usage_service.facility_usage(db, facility.facility_id, WEEK_START, WEEK_END)
        assert report["total_bookings"] == 1

    def test_peak_hours_sorted(self, db, clock, roles):
        facility = make_facility(db)
        _book(db, clock, facility, date(2024, 1, 2), time(18), time(19), roles=roles)
        _book(db, clock, facility, date(2024, 1, 3), time(9, 30), time(10, 30), roles=roles)
        _book(db, clock, facility, date(2024, 1, 4), time(18), time(20), roles=roles)
        report = usage_service.facility_usage(db, facility.facility_id, WEEK_START, WEEK_END)
        assert report["peak_hours"] == [
            {"hour": "09:00", "bookings": 1},
            {"hour": "18:00", "bookings": 2},
        ]

    def test_closed_days_not_available(self, db):
        hours = {"monday": {"start": "09:00", "end": "17:00", "closed": False}}
        facility = make_facility(db, operating_hours=hours)
        report = usage_service.facility_usage(db, facility.facility_id, WEEK_START, WEEK_END)
        assert report["available_hours"] == Decimal("8.00")
        assert report["occupancy_rate"] == Decimal("0")

    def test_no_open_hours_means_zero_occupancy(self, db):
        facility = make_facility(db, operating_hours={})
        report = usage_service.facility_usage(db, facility.facility_id, WEEK_START, WEEK_END)
        assert report["available_hours"] == Decimal("0")
        assert report["occupancy_rate"] == Decimal("0")

    def test_reversed_range_rejected(self, db):
        facility = make_facility(db)
        with pytest.raises(ValidationError):
            usage_service.facility_usage(db, facility.facility_id, WEEK_END, WEEK_START)


class TestCommunityUsage:

    def test_one_report_per_facility(self, db, clock, roles):
        pool = make_facility(db, name="Pool", hourly_rate="10.00")
        gym = make_facility(db, name="Gym", hourly_rate="5.00")
        _book(db, clock, pool, date(2024, 1, 2), time(8), time(10), roles=roles)

        reports = usage_service.community_usage(db, WEEK_START, WEEK_END)
        assert [r["facility_name"] for r in reports] == ["Gym", "Pool"]
        by_id = {r["facility_id"]: r for r in reports}
        assert by_id[pool.facility_id]["total_revenue"] == Decimal("20.00")
        assert by_id[gym.facility_id]["total_bookings"] == 0
        assert by_id[gym.facility_id]["peak_hours"] == []


class TestReportsAPI:

    def test_facility_usage_endpoint(self, client):
        facility = create_test_facility(client, hourly_rate="20.00")
        booking = create_test_booking(client, facility["facility_id"]).json()
        client.post(f"/api/approvals/{booking['booking_id']}/decide", json={
            "approver_id": APPROVER,
            "decision": "approved",
        })

        resp = client.get(
            f"/api/reports/facilities/{facility['facility_id']}/usage?date_from=2024-01-01&date_to=2024-01-31",
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["total_bookings"] == 1
        assert Decimal(data["total_revenue"]) == Decimal("40.00")
        assert data["peak_hours"] == [{"hour": "10:00", "bookings": 1}]

    def test_reversed_range_returns_422(self, client):
        resp = client.get("/api/reports/usage?date_from=2024-02-01&date_to=2024-01-01")
        assert resp.status_code == 422
        assert resp.json()["error"] == "validation_error"
