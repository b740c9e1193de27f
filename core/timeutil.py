"""Timestamp helpers shared by services (platform timestamps are ISO 8601, UTC)."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

# Postgres trims trailing zeros from fractional seconds; fromisoformat
# before 3.11 only takes 3 or 6 digits.
_FRACTION = re.compile(r"\.(\d+)")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_now() -> str:
    return utc_now().isoformat()


def _six_digit_fraction(match: "re.Match[str]") -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a platform timestamp; naive values are taken as UTC.

    Fractional seconds of any length are accepted.
    Returns None for empty or unparseable input.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = _FRACTION.sub(_six_digit_fraction, str(value).replace("Z", "+00:00"), count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
