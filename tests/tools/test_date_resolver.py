import pytest
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from booking_assistant.tools.date_resolver import resolve_date

TUESDAY = date(2025, 6, 10)


class TestDateResolver:

    def test_keywords(self):
        assert resolve_date("today", now=TUESDAY) == date(2025, 6, 10)
        assert resolve_date("tomorrow", now=TUESDAY) == date(2025, 6, 11)
        assert resolve_date("day after tomorrow", now=TUESDAY) == date(2025, 6, 12)

    def test_keywords_ignore_case_and_spacing(self):
        assert resolve_date("  ToMorrow ", now=TUESDAY) == date(2025, 6, 11)
        assert resolve_date("Day   After  Tomorrow", now=TUESDAY) == date(2025, 6, 12)

    def test_iso_date_used_verbatim(self):
        assert resolve_date("2025-12-24", now=TUESDAY) == date(2025, 12, 24)
        # past dates are returned as-is; callers decide whether that is acceptable
        assert resolve_date("2020-01-01", now=TUESDAY) == date(2020, 1, 1)

    def test_invalid_iso_date_falls_through_to_default(self):
        assert resolve_date("2025-02-30", now=TUESDAY) == date(2025, 6, 11)

    def test_weekday_is_strictly_after_today(self):
        assert resolve_date("friday", now=TUESDAY) == date(2025, 6, 13)
        assert resolve_date("on wednesday please", now=TUESDAY) == date(2025, 6, 11)
        # same weekday as today means a week from today
        assert resolve_date("tuesday", now=TUESDAY) == date(2025, 6, 17)

    def test_next_weekday_adds_a_week(self):
        assert resolve_date("next friday", now=TUESDAY) == date(2025, 6, 20)
        assert resolve_date("Next Monday", now=TUESDAY) == date(2025, 6, 23)

    def test_unrecognized_defaults_to_tomorrow(self):
        assert resolve_date("whenever works", now=TUESDAY) == date(2025, 6, 11)
        assert resolve_date("", now=TUESDAY) == date(2025, 6, 11)
        assert resolve_date(None, now=TUESDAY) == date(2025, 6, 11)

    def test_aware_now_is_converted_to_operating_timezone(self):
        # 22:30 UTC on the 10th is already the 11th in Riyadh (UTC+3)
        now = datetime(2025, 6, 10, 22, 30, tzinfo=ZoneInfo("UTC"))
        assert resolve_date("today", now=now, timezone="Asia/Riyadh") == date(2025, 6, 11)

    def test_naive_datetime_now_uses_its_date(self):
        assert resolve_date("today", now=datetime(2025, 6, 10, 23, 59)) == TUESDAY

    @pytest.mark.parametrize("offset", range(7))
    def test_every_weekday_resolves_within_a_week(self, offset):
        today = TUESDAY + timedelta(days=offset)
        for name in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"):
            resolved = resolve_date(name, now=today)
            assert today < resolved <= today + timedelta(days=7)
            assert resolved.strftime("%A").lower() == name
