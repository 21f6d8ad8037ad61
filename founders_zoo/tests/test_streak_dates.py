from datetime import date, datetime, timedelta, timezone

import pytest

from founders_zoo.features.streaks.dates import day_diff, epoch_ms, format_local_timestamp, parse_day


def test_parse_day_returns_utc_midnight():
    parsed = parse_day("2024-01-10")
    assert parsed == datetime(2024, 1, 10, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "raw",
    ["", "2024", "2024-01", "2024-01-01-01", "2024/01/01", "abcd-01-01", "2024-00-10", "2024-13-01", "2024-01-00", "2024-01-32", "2024-1.5-01", "2024-0_1-1_0", "２０２４-01-10", "2024--1-10", "+2024-01-10", None, 20240101],
)
def test_parse_day_rejects_malformed(raw):
    assert parse_day(raw) is None


def test_parse_day_is_structural_only():
    # Day 31 in April is accepted and lands on May 1
    assert parse_day("2024-04-31") == parse_day("2024-05-01")
    assert parse_day("2024-02-30") == datetime(2024, 3, 1, tzinfo=timezone.utc)


def test_parse_day_accepts_unpadded_parts():
    assert parse_day("2024-1-9") == datetime(2024, 1, 9, tzinfo=timezone.utc)


def test_parse_day_out_of_range_year_is_rejected():
    assert parse_day("0-01-01") is None
    assert parse_day("10000-01-01") is None


def test_day_differences_match_calendar_distance():
    start = date(2023, 1, 1)
    seen = set()
    for offset in range(800):
        current = start + timedelta(days=offset)
        parsed = parse_day(current.isoformat())
        assert parsed not in seen
        seen.add(parsed)
        assert day_diff(parsed, parse_day(start.isoformat())) == offset


def test_day_diff_across_dst_change_is_one():
    assert day_diff(parse_day("2024-03-11"), parse_day("2024-03-10")) == 1
    assert day_diff(parse_day("2024-11-04"), parse_day("2024-11-03")) == 1


def test_epoch_ms_for_fixed_moment():
    assert epoch_ms(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000


def test_format_local_timestamp_negative_offset():
    tz = timezone(-timedelta(hours=5, minutes=30))
    moment = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=tz)
    assert format_local_timestamp(moment) == "2024-01-02T03:04:05.678-05:30"


def test_format_local_timestamp_utc():
    moment = datetime(2024, 12, 31, 23, 59, 59, 1000, tzinfo=timezone.utc)
    assert format_local_timestamp(moment) == "2024-12-31T23:59:59.001+00:00"


def test_format_local_timestamp_defaults_to_now():
    rendered = format_local_timestamp()
    assert len(rendered) == len("2024-01-01T00:00:00.000+00:00")
    assert rendered[23] in "+-"
