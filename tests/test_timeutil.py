"""
Unit tests for platform timestamp parsing.
"""

from datetime import datetime, timezone

from core.timeutil import parse_timestamp


# Tests for parse_timestamp

class TestParseTimestamp:
    """Test the timestamp shapes the platform sends."""

    def test_five_digit_fraction(self):
        parsed = parse_timestamp("2024-03-05T10:15:30.12345+00:00")
        assert parsed == datetime(2024, 3, 5, 10, 15, 30, 123450, tzinfo=timezone.utc)

    def test_long_fraction_is_truncated(self):
        parsed = parse_timestamp("2024-03-05T10:15:30.1234567Z")
        assert parsed.microsecond == 123456

    def test_naive_is_utc(self):
        assert parse_timestamp("2024-03-05T10:15:30").tzinfo == timezone.utc

    def test_date_only(self):
        assert parse_timestamp("2024-03-05") == datetime(2024, 3, 5, tzinfo=timezone.utc)

    def test_garbage_and_empty(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None
