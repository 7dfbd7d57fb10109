from datetime import datetime, timedelta, timezone

import pytest

from moe.groq_monitor import QuotaMonitor, parse_reset_duration


@pytest.mark.unit
@pytest.mark.parametrize("value,seconds", [
    ("2m59.56s", 179.56),
    ("7.66s", 7.66),
    ("120ms", 0.12),
    ("1h", 3600),
])
def test_parse_reset_duration(value, seconds):
    assert parse_reset_duration(value).total_seconds() == pytest.approx(seconds)


@pytest.mark.unit
@pytest.mark.parametrize("value", [None, "", "soon"])
def test_parse_reset_duration_invalid(value):
    assert parse_reset_duration(value) is None


@pytest.mark.unit
def test_update_quota_from_headers():
    monitor = QuotaMonitor()
    monitor.update_quota({
        "x-ratelimit-remaining-requests": "50",
        "x-ratelimit-limit-requests": "100",
        "x-ratelimit-reset-requests": "30s",
    })
    status = monitor.get_quota_status()
    assert status["remaining"] == 50
    assert status["limit"] == 100
    assert status["reset_time"] > datetime.now(timezone.utc)
    assert status["warning"] is None


@pytest.mark.unit
def test_unparsable_headers_are_ignored():
    monitor = QuotaMonitor()
    monitor.update_quota({"x-ratelimit-remaining-requests": "lots"})
    assert monitor.quota_info["remaining"] is None
    assert monitor.quota_info["last_check"] is not None


@pytest.mark.unit
@pytest.mark.parametrize("remaining,level", [(8, "warning"), (3, "error")])
def test_quota_warning_levels(remaining, level):
    monitor = QuotaMonitor()
    monitor.update_quota({"x-ratelimit-remaining-requests": str(remaining), "x-ratelimit-limit-requests": "100"})
    warning = monitor.get_quota_warning()
    assert warning["level"] == level
    assert str(remaining) in warning["message"]


@pytest.mark.unit
def test_is_exhausted_until_reset():
    monitor = QuotaMonitor()
    assert monitor.is_exhausted() is False

    monitor.update_quota({"x-ratelimit-remaining-requests": "0", "x-ratelimit-limit-requests": "100",
                          "x-ratelimit-reset-requests": "1m"})
    assert monitor.is_exhausted() is True

    monitor.quota_info["reset_time"] = datetime.now(timezone.utc) - timedelta(seconds=1)
    assert monitor.is_exhausted() is False
