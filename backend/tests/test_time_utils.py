"""Tests for UTC time helpers"""
from datetime import datetime, timedelta, timezone

from app.utils.time import ensure_utc, format_iso, parse_iso


def test_parse_iso_returns_aware_utc():
    parsed = parse_iso("2026-10-01T02:00:00+02:00")
    assert parsed == datetime(2026, 10, 1, 0, 0, tzinfo=timezone.utc)
    assert parsed.tzinfo == timezone.utc


def test_naive_values_from_storage_are_treated_as_utc():
    naive = datetime(2026, 10, 1, 12, 30)
    assert ensure_utc(naive) == datetime(2026, 10, 1, 12, 30, tzinfo=timezone.utc)


def test_format_iso_uses_z_suffix():
    value = datetime(2026, 10, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    assert format_iso(value) == "2026-10-01T12:00:00Z"
    assert parse_iso(format_iso(value)) == value
