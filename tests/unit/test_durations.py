"""Tests for duration parsing and formatting."""

import pytest

from brigade_observer.durations import format_duration, parse_duration


class TestParseDuration:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("0", 0.0),
            ("30s", 30.0),
            ("1m", 60.0),
            ("24h", 86400.0),
            ("1h30m", 5400.0),
            ("2h45m30s", 9930.0),
            ("1.5h", 5400.0),
            ("300ms", 0.3),
            ("10us", 1e-5),
            ("10µs", 1e-5),
            ("500ns", 5e-7),
            (" 2m ", 120.0),
            ("-1m", -60.0),
            ("+1m", 60.0),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["", "   ", "1", "60", "1d", "m", "1m2", "h1", "abc", "-"])
    def test_invalid(self, value):
        with pytest.raises(ValueError, match="invalid duration"):
            parse_duration(value)


class TestFormatDuration:
    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (0, "0s"),
            (45, "45s"),
            (90, "1m30s"),
            (3600, "1h0m0s"),
            (86400, "24h0m0s"),
            (0.25, "0.25s"),
            (-60, "-1m0s"),
        ],
    )
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected

    def test_parses_back(self):
        assert parse_duration(format_duration(5400)) == 5400
