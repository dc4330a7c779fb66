"""
Unit tests for lease duration parsing.
"""

import pytest
from pydantic import BaseModel

from kohakudhcp.models.duration import (
    DEFAULT_DURATION_SECONDS,
    DurationSeconds,
    format_duration,
    parse_duration,
)


class TestParseDuration:
    """Test text and integer durations."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("24 hours", 86400),
            ("7 days", 604800),
            ("1 week", 604800),
            ("90m", 5400),
            ("2 hrs", 7200),
            ("30 seconds", 30),
            ("45", 45),
            ("1.5 hours", 5400),
            ("0.5 days", 43200),
            ("2.25m", 135),
            (3600, 3600),
        ],
    )
    def test_known_values(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["soon", "5 fortnights", "", "1.5.2 hours", True])
    def test_unparseable_falls_back_to_default(self, value):
        """Test that garbage yields 24 hours, not an error."""
        assert parse_duration(value) == DEFAULT_DURATION_SECONDS

    def test_none_uses_given_default(self):
        assert parse_duration(None, default=600) == 600

    def test_units_are_case_insensitive(self):
        assert parse_duration("2 Hours") == 7200


class TestFormatDuration:
    """Test rendering seconds back to text."""

    def test_largest_whole_unit(self):
        assert format_duration(604800) == "7 days"
        assert format_duration(3600) == "1 hour"
        assert format_duration(5400) == "90 minutes"
        assert format_duration(59) == "59 seconds"
        assert format_duration(1) == "1 second"


class _Model(BaseModel):
    lease: DurationSeconds


class TestDurationField:
    """Test the pydantic field type."""

    def test_accepts_text_and_int(self):
        assert _Model(lease="12 hours").lease == 43200
        assert _Model(lease=120).lease == 120
