from datetime import datetime, timedelta, timezone

import pytest

from expirysignal.utils.timestamps import as_utc, format_instant, parse_instant, utcnow


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2025-01-01T00:00:00Z", datetime(2025, 1, 1, tzinfo=timezone.utc)),
        ("2025-01-01T00:00Z", datetime(2025, 1, 1, tzinfo=timezone.utc)),
        ("2025-01-01T00:00:00.5Z", datetime(2025, 1, 1, 0, 0, 0, 500000, tzinfo=timezone.utc)),
        ("2025-01-01T00:00:00.123456789Z", datetime(2025, 1, 1, 0, 0, 0, 123000, tzinfo=timezone.utc)),
        ("2025-01-01T00:00:00.0005Z", datetime(2025, 1, 1, tzinfo=timezone.utc)),
        ("2025-01-01T05:30:00+05:30", datetime(2025, 1, 1, tzinfo=timezone.utc)),
        ("2024-12-31T19:00:00-05:00", datetime(2025, 1, 1, tzinfo=timezone.utc)),
    ],
)
def test_parse_instant(value, expected):
    parsed = parse_instant(value)
    assert parsed == expected
    assert parsed.utcoffset() == timedelta(0)


@pytest.mark.parametrize(
    "value",
    [
        "",
        "2025-01-01",
        "2025-01-01T00:00:00",
        "2025-13-01T00:00:00Z",
        "2025-02-30T00:00:00Z",
        "2025-01-01T25:00:00Z",
        "2025-01-01 00:00:00Z\n",
        "tomorrow",
    ],
)
def test_parse_instant_rejects(value):
    with pytest.raises(ValueError):
        parse_instant(value)


def test_format_instant_truncates_to_milliseconds():
    value = datetime(2025, 1, 1, 0, 0, 0, 999999, tzinfo=timezone.utc)
    assert format_instant(value) == "2025-01-01T00:00:00.999Z"


def test_format_instant_converts_offsets_and_naive_values():
    plus3 = datetime(2025, 1, 1, 3, 0, tzinfo=timezone(timedelta(hours=3)))
    assert format_instant(plus3) == "2025-01-01T00:00:00.000Z"
    assert as_utc(datetime(2025, 1, 1)).tzinfo is timezone.utc


def test_parsed_instants_round_trip_through_format():
    for value in ("2025-01-01T00:00:00.0005Z", "2025-01-01T00:00:00.999999Z", "2025-01-01T05:30:00.1234+05:30"):
        parsed = parse_instant(value)
        assert parse_instant(format_instant(parsed)) == parsed


def test_utcnow_has_millisecond_precision():
    assert utcnow().microsecond % 1000 == 0
