"""Tests for datetime helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from core.utils.datetime import elapsed_since, ensure_aware, now, parse_iso, to_iso, to_unix_millis


def test_now_is_utc():
    assert now().tzinfo == timezone.utc


def test_ensure_aware_naive_is_utc():
    assert ensure_aware(datetime(2026, 1, 1)).tzinfo == timezone.utc


def test_ensure_aware_keeps_offset():
    hk = timezone(timedelta(hours=8))
    value = datetime(2026, 1, 1, tzinfo=hk)
    assert ensure_aware(value) is value


@pytest.mark.parametrize(
    "text",
    [
        "2026-10-19T12:00:00Z",
        "2026-10-19T12:00:00+00:00",
        "2026-10-19T20:00:00+08:00",
        "2026-10-19T12:00:00",
    ],
)
def test_parse_iso_variants(text):
    assert parse_iso(text) == datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("text", ["", "yesterday", "2026-13-45"])
def test_parse_iso_invalid(text):
    assert parse_iso(text) is None


def test_to_iso_normalizes_to_utc():
    value = datetime(2026, 10, 19, 20, 0, tzinfo=timezone(timedelta(hours=8)))
    assert to_iso(value) == "2026-10-19T12:00:00+00:00"


def test_elapsed_since():
    start = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
    assert elapsed_since(start, start + timedelta(days=3)) == timedelta(days=3)


def test_to_unix_millis():
    assert to_unix_millis(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000
