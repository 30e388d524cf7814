import time as host_time
from datetime import date, datetime, time, timedelta, timezone

import pytest

from whatsapp_scheduler.domain.civil_time import (
    apply_offset,
    build_reference_instant,
    civil_today,
    format_appointment_datetime,
    parse_timestamp,
    to_civil_iso,
)


@pytest.fixture
def foreign_host_timezone(monkeypatch):
    """Run with a host timezone far from Brasília."""
    monkeypatch.setenv("TZ", "Asia/Tokyo")
    host_time.tzset()
    yield
    monkeypatch.undo()
    host_time.tzset()


def test_offset_from_appointment_start_is_brasilia_civil_time(foreign_host_timezone):
    reference = build_reference_instant(date(2024, 3, 10), time(14, 30), "APPOINTMENT_START")
    scheduled = apply_offset(reference, -60, "MINUTES")

    assert to_civil_iso(scheduled) == "2024-03-10T13:30:00-03:00"
    assert scheduled == datetime(2024, 3, 10, 16, 30, tzinfo=timezone.utc)


def test_reference_instant_accepts_stored_strings():
    reference = build_reference_instant("2024-03-10", "14:30:00", "APPOINTMENT_START")
    assert to_civil_iso(reference) == "2024-03-10T14:30:00-03:00"


def test_appointment_creation_reference_never_resolves():
    assert build_reference_instant(date(2024, 3, 10), time(14, 30), "APPOINTMENT_CREATION") is None


@pytest.mark.parametrize("bad_date,bad_time", [(None, time(9, 0)), (date(2024, 3, 10), None), ("10/03/2024", "09:00"), ("2024-03-10", "nove")])
def test_unparseable_appointment_yields_no_reference(bad_date, bad_time):
    assert build_reference_instant(bad_date, bad_time, "APPOINTMENT_START") is None


def test_hours_and_days_offsets():
    reference = build_reference_instant(date(2024, 3, 10), time(14, 30), "APPOINTMENT_START")
    assert to_civil_iso(apply_offset(reference, -2, "HOURS")) == "2024-03-10T12:30:00-03:00"
    assert to_civil_iso(apply_offset(reference, -1, "DAYS")) == "2024-03-09T14:30:00-03:00"


def test_historical_dst_dates_keep_the_fixed_offset():
    # Brazil observed DST in January 2018; the fixed offset ignores it
    reference = build_reference_instant(date(2018, 1, 15), time(10, 0), "APPOINTMENT_START")
    assert to_civil_iso(reference) == "2018-01-15T10:00:00-03:00"


def test_civil_today_crosses_midnight_before_utc():
    late_evening = datetime(2024, 3, 11, 2, 30, tzinfo=timezone.utc)
    assert civil_today(late_evening) == date(2024, 3, 10)


@pytest.mark.parametrize(
    "stored",
    [
        "2024-03-10T09:00:00-03:00",
        "2024-03-10T12:00:00Z",
        "2024-03-10T12:00:00+00",
        "2024-03-10T12:00:00+00:00",
        "2024-03-10 12:00:00.000000+00:00",
        "2024-03-10T09:00:00",
    ],
)
def test_parse_timestamp_tolerates_mixed_representations(stored):
    assert parse_timestamp(stored) == datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def test_parse_timestamp_rejects_garbage():
    assert parse_timestamp("amanhã às 10") is None
    assert parse_timestamp("") is None
    assert parse_timestamp(None) is None


def test_parse_timestamp_date_only_is_civil_midnight():
    assert parse_timestamp("2024-03-10") == datetime(2024, 3, 10, 3, 0, tzinfo=timezone.utc)


def test_to_civil_iso_drops_microseconds():
    instant = datetime(2024, 3, 10, 12, 0, 5, 123456, tzinfo=timezone.utc)
    assert to_civil_iso(instant) == "2024-03-10T09:00:05-03:00"
    assert to_civil_iso(instant + timedelta(hours=3)) == "2024-03-10T12:00:05-03:00"


def test_format_appointment_datetime():
    assert format_appointment_datetime(date(2024, 3, 10), time(14, 30)) == "10/03/2024 às 14:30"
    assert format_appointment_datetime("2024-03-10", "14:30:00") == "10/03/2024 às 14:30"
    assert format_appointment_datetime(None, time(14, 30)) == ""
