"""Test parsing of operator-entered start times."""
from datetime import datetime, timedelta

from homeassistant.util import dt as dt_util

from custom_components.smart_appliances.time_utils import parse_start_time

NOW = dt_util.as_local(datetime(2026, 3, 10, 8, 0, tzinfo=dt_util.UTC))


def test_time_only_later_today():
    """HH:MM later today stays on today."""
    result = dt_util.as_local(parse_start_time("23:59", NOW))

    assert (result.hour, result.minute) == (23, 59)
    assert result.date() == NOW.date()


def test_time_only_already_past_rolls_over():
    """HH:MM that already passed means tomorrow."""
    result = dt_util.as_local(parse_start_time("00:00", NOW))

    assert (result.hour, result.minute) == (0, 0)
    assert result.date() == NOW.date() + timedelta(days=1)


def test_german_date_format():
    """dd.mm.yyyy HH:MM is interpreted as local time."""
    result = dt_util.as_local(parse_start_time("24.12.2026 18:30", NOW))

    assert (result.year, result.month, result.day) == (2026, 12, 24)
    assert (result.hour, result.minute) == (18, 30)


def test_iso_with_offset():
    """ISO 8601 keeps its offset."""
    result = parse_start_time("2026-03-10T22:00:00+01:00", NOW)

    assert result == datetime(2026, 3, 10, 21, 0, tzinfo=dt_util.UTC)


def test_datetime_passthrough():
    """Aware datetimes are returned unchanged."""
    value = datetime(2026, 3, 11, 6, 0, tzinfo=dt_util.UTC)

    assert parse_start_time(value, NOW) == value


def test_invalid_values():
    """Unparseable input yields None."""
    assert parse_start_time("25:00", NOW) is None
    assert parse_start_time("31.02.2026 10:00", NOW) is None
    assert parse_start_time("tomorrow morning", NOW) is None
    assert parse_start_time("", NOW) is None
