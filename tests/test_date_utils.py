# tests/test_date_utils.py
import datetime as dt
import pytest

from utils import normalize_iso_date


def test_normalize_valid_iso_string():
    d = normalize_iso_date("2025-01-10")
    assert isinstance(d, dt.date)
    assert d == dt.date(2025, 1, 10)


def test_normalize_invalid_month():
    with pytest.raises(ValueError) as exc:
        normalize_iso_date("2025-13-01")
    assert "Invalid date format" in str(exc.value)


def test_normalize_invalid_string():
    with pytest.raises(ValueError):
        normalize_iso_date("not-a-date")


def test_normalize_already_date():
    original = dt.date(2025, 1, 10)
    assert normalize_iso_date(original) == original


def test_normalize_datetime_drops_time():
    assert normalize_iso_date(dt.datetime(2025, 1, 10, 23, 59)) == dt.date(2025, 1, 10)


def test_normalize_none_raises():
    with pytest.raises(ValueError):
        normalize_iso_date(None)
