"""Tests for time helpers."""

from datetime import UTC, datetime, timedelta

import pytest

from deploy_engine.utils import describe_age, epoch_millis, utcnow

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    "delta,expected",
    [
        (timedelta(seconds=20), "just now"),
        (timedelta(minutes=1), "1 minute ago"),
        (timedelta(minutes=45), "45 minutes ago"),
        (timedelta(hours=1, minutes=30), "1 hour ago"),
        (timedelta(hours=5), "5 hours ago"),
        (timedelta(days=3, hours=2), "3 days ago"),
        (timedelta(seconds=-30), "just now"),
    ],
)
def test_describe_age(delta, expected):
    assert describe_age(NOW - delta, NOW) == expected


def test_utcnow_is_aware():
    assert utcnow().tzinfo is not None


def test_epoch_millis_is_milliseconds():
    assert abs(epoch_millis() - utcnow().timestamp() * 1000) < 5000
