"""Timezone helpers for business-date boundaries of ledger reports."""

from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo


def report_resolve_business_date(timestamp_utc: datetime, timezone_name: str) -> date:
    """Resolve the business date of a UTC timestamp in the configured timezone.

    Args:
        timestamp_utc: Offset-aware timestamp.
        timezone_name: IANA timezone name, for example `Asia/Kolkata`.

    Returns:
        date: Local business date.

    Raises:
        ValueError: Raised when the timestamp is offset-naive or the timezone name is blank.
    """

    if not isinstance(timezone_name, str) or not timezone_name.strip():
        raise ValueError("timezone_name must be a non-empty string")
    if timestamp_utc.tzinfo is None or timestamp_utc.utcoffset() is None:
        raise ValueError("timestamp_utc must be offset-aware")

    return timestamp_utc.astimezone(ZoneInfo(timezone_name.strip())).date()


def report_business_today(timezone_name: str) -> date:
    """Return today's business date in the configured timezone."""

    return report_resolve_business_date(datetime.now(timezone.utc), timezone_name)


def report_parse_date(value: str) -> date:
    """Parse a `YYYY-MM-DD` report date.

    Args:
        value: Date text.

    Returns:
        date: Parsed date.

    Raises:
        ValueError: Raised when the value is blank or not an ISO date.
    """

    if not isinstance(value, str) or not value.strip():
        raise ValueError("report_date must be a non-empty string")

    try:
        return date.fromisoformat(value.strip())
    except ValueError as error:
        raise ValueError(f"report_date must be a valid YYYY-MM-DD date: {value}") from error


__all__ = ["report_business_today", "report_parse_date", "report_resolve_business_date"]
