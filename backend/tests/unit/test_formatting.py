"""Tests for format_duration()."""

from datetime import timedelta

import pytest

from account_service.core.formatting import format_duration


@pytest.mark.parametrize(
    ("duration", "expected"),
    [
        (timedelta(milliseconds=86_400_000), "1 day"),
        (timedelta(days=3), "3 days"),
        (timedelta(milliseconds=3_600_000), "1 hour"),
        (timedelta(hours=23), "23 hours"),
        (timedelta(minutes=90), "1 hour"),
        (timedelta(minutes=15), "15 minutes"),
        (timedelta(minutes=1), "1 minute"),
        (timedelta(seconds=45), "45 seconds"),
        (timedelta(seconds=1), "1 second"),
        (timedelta(0), "0 seconds"),
    ],
)
def test_format_duration(duration, expected):
    assert format_duration(duration) == expected
