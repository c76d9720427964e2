# src/shipment_alerts/utils/dates.py
import math
from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser as dateparser  # accepts "Z", offsets, date-only strings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_ts(value: Any) -> Optional[datetime]:
    """Parse an ISO string / datetime into an aware UTC datetime. Naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        # epoch milliseconds; NaN, infinity and out-of-range values are unreadable
        try:
            if math.isnan(value) or math.isinf(value):
                return None
            dt = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        try:
            dt = dateparser.isoparse(str(value))
        except (ValueError, OverflowError):
            try:
                dt = dateparser.parse(str(value))
            except (ValueError, OverflowError):
                return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()
