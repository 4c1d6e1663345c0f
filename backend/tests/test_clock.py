"""Tests for the injectable clocks and settings defaults."""
from datetime import date, datetime

import pytz
from sqlalchemy.engine import make_url

from app.clock import FixedClock, SystemClock
from app.config import Settings


class TestFixedClock:

    def test_today_is_local_to_the_community(self):
        # 20:00 UTC on Jan 1 is already 04:00 on Jan 2 in Kuala Lumpur
        clock = FixedClock(pytz.utc.localize(datetime(2024, 1, 1, 20, 0)), tz_name="Asia/Kuala_Lumpur")
        assert clock.today() == date(2024, 1, 2)
        assert clock.now().hour == 4

    def test_same_instant_earlier_date_west_of_utc(self):
        clock = FixedClock(pytz.utc.localize(datetime(2024, 1, 1, 2, 0)), tz_name="America/New_York")
        assert clock.today() == date(2023, 12, 31)

    def test_naive_instant_read_as_utc(self):
        clock = FixedClock(datetime(2024, 1, 1, 20, 0), tz_name="Asia/Kuala_Lumpur")
        assert clock.now() == pytz.utc.localize(datetime(2024, 1, 1, 20, 0))

    def test_agrees_with_system_clock_timezone(self):
        assert FixedClock(datetime(2024, 1, 1)).tz.zone == SystemClock().tz.zone

    def test_moving_the_instant_moves_today(self, clock):
        clock.instant = pytz.utc.localize(datetime(2024, 1, 1, 17, 0))
        assert clock.today() == date(2024, 1, 2)


def test_default_database_url_uses_declared_driver():
    url = make_url(Settings.model_fields["DATABASE_URL"].default)
    assert url.get_backend_name() == "postgresql"
    assert url.get_driver_name() == "psycopg2"
