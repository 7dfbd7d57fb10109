import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")


def parse_reset_duration(value: Optional[str]) -> Optional[timedelta]:
    """Parse Groq's reset header format ("2m59.56s", "7.66s", "120ms")."""
    if not value:
        return None
    total = 0.0
    matched = False
    for amount, unit in _DURATION_PART.findall(value.strip()):
        matched = True
        n = float(amount)
        if unit == "h":
            total += n * 3600
        elif unit == "m":
            total += n * 60
        elif unit == "s":
            total += n
        else:
            total += n / 1000
    return timedelta(seconds=total) if matched else None


class QuotaMonitor:
    def __init__(self, warning_threshold: float = 0.1, critical_threshold: float = 0.05):
        self.quota_info = {
            "remaining": None,  # Remaining requests in the current window
            "limit": None,  # Requests allowed per window
            "reset_time": None,  # When the window resets
            "last_check": None,
            "warning_threshold": warning_threshold,
            "critical_threshold": critical_threshold,
        }

    def update_quota(self, headers: Mapping[str, str]) -> None:
        """
        Update quota information from Groq response headers.

        Args:
            headers: Response headers from the Groq API
        """
        remaining = headers.get("x-ratelimit-remaining-requests")
        limit = headers.get("x-ratelimit-limit-requests")
        reset = parse_reset_duration(headers.get("x-ratelimit-reset-requests"))
        now = datetime.now(timezone.utc)
        try:
            if remaining is not None:
                self.quota_info["remaining"] = int(remaining)
            if limit is not None:
                self.quota_info["limit"] = int(limit)
        except ValueError:
            logger.warning(f"Unparsable Groq rate limit headers: remaining={remaining!r} limit={limit!r}")
        if reset is not None:
            self.quota_info["reset_time"] = now + reset
        self.quota_info["last_check"] = now
        logger.debug(
            f"Quota updated - Remaining: {self.quota_info['remaining']}, "
            f"Reset: {self.quota_info['reset_time']}"
        )

    def _ratio(self) -> Optional[float]:
        remaining = self.quota_info["remaining"]
        limit = self.quota_info["limit"]
        if remaining is None or not limit:
            return None
        return remaining / limit

    def is_exhausted(self) -> bool:
        """True while the last response said no requests remain and the window has not reset."""
        if self.quota_info["remaining"] != 0:
            return False
        reset_time = self.quota_info["reset_time"]
        if reset_time is None:
            return False
        return datetime.now(timezone.utc) < reset_time

    def get_quota_warning(self) -> Optional[Dict[str, str]]:
        """
        Get quota warning if thresholds are exceeded.

        Returns:
            Warning dict with level and message, or None if no warning
        """
        ratio = self._ratio()
        if ratio is None:
            return None

        if self.quota_info["reset_time"]:
            seconds = (self.quota_info["reset_time"] - datetime.now(timezone.utc)).total_seconds()
            resets_in = f"{max(int(seconds), 0)} seconds"
        else:
            resets_in = "unknown time"

        if ratio <= self.quota_info["critical_threshold"]:
            return {
                "level": "error",
                "message": (
                    f"Critical: only {self.quota_info['remaining']} Groq requests remaining; "
                    f"quota resets in {resets_in}."
                ),
            }
        if ratio <= self.quota_info["warning_threshold"]:
            return {
                "level": "warning",
                "message": (
                    f"Warning: {self.quota_info['remaining']} Groq requests remaining; "
                    f"quota resets in {resets_in}."
                ),
            }
        return None

    def get_quota_status(self) -> Dict:
        now = datetime.now(timezone.utc)
        last_check = self.quota_info["last_check"]
        return {
            "remaining": self.quota_info["remaining"],
            "limit": self.quota_info["limit"],
            "reset_time": self.quota_info["reset_time"],
            "last_check": last_check,
            "time_since_check": (now - last_check).total_seconds() if last_check else None,
            "warning": self.get_quota_warning(),
        }


# Global instance
quota_monitor = QuotaMonitor()
