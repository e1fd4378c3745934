"""Tests for the office hours window."""

from datetime import datetime

import config


def test_weekday_inside_window() -> None:
    # 2024-06-05 is a Wednesday
    assert config.is_office_hours(datetime(2024, 6, 5, 10, 30)) is True


def test_window_end_is_exclusive() -> None:
    assert config.is_office_hours(datetime(2024, 6, 5, config.OFFICE_HOURS_END, 0)) is False
    assert config.is_office_hours(datetime(2024, 6, 5, config.OFFICE_HOURS_START, 0)) is True


def test_weekend_is_outside(monkeypatch) -> None:
    monkeypatch.setattr(config, "OFFICE_DAYS", {1, 2, 3, 4, 5})
    # 2024-06-08 is a Saturday
    assert config.is_office_hours(datetime(2024, 6, 8, 10, 0)) is False


def test_parse_days() -> None:
    assert config._parse_days("1, 2,7,") == {1, 2, 7}
