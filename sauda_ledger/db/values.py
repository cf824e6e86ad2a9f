"""Value normalization helpers shared by db-layer services.

SQL parameters are bound as plain text (ISO dates, decimal strings) so the
same statements run on PostgreSQL and SQLite; row values are parsed back
into typed Python values here.
"""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import NAMESPACE_URL, uuid5


def db_value_require_text(value: str, field_name: str) -> str:
    """Validate required text and normalize surrounding whitespace.

    Args:
        value: Candidate text value.
        field_name: Field name for deterministic error text.

    Returns:
        str: Normalized text value.

    Raises:
        ValueError: Raised when value is invalid.
    """

    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")

    normalized_value = value.strip()
    if not normalized_value:
        raise ValueError(f"{field_name} must not be blank")

    return normalized_value


def db_value_optional_text(value: str | None, field_name: str) -> str | None:
    """Validate optional text; blank values collapse to None.

    Args:
        value: Optional text value.
        field_name: Field name for deterministic error text.

    Returns:
        str | None: Normalized text value or None.

    Raises:
        ValueError: Raised when provided type is invalid.
    """

    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string when provided")

    normalized_value = value.strip()
    if not normalized_value:
        return None

    return normalized_value


def db_value_decimal_text(value: Decimal, field_name: str, allow_negative: bool = False) -> str:
    """Render a finite decimal as SQL parameter text.

    Args:
        value: Decimal value.
        field_name: Field name for deterministic error text.
        allow_negative: Whether negative values are accepted.

    Returns:
        str: Decimal rendered without exponent notation.

    Raises:
        ValueError: Raised when value is not a finite decimal or is negative when not allowed.
    """

    if not isinstance(value, Decimal):
        raise ValueError(f"{field_name} must be a Decimal")
    if not value.is_finite():
        raise ValueError(f"{field_name} must be finite")
    if not allow_negative and value < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return format(value, "f")


def db_value_optional_decimal_text(value: Decimal | None, field_name: str) -> str | None:
    """Render an optional decimal as SQL parameter text."""

    if value is None:
        return None
    return db_value_decimal_text(value, field_name)


def db_value_parse_decimal(value: Any) -> Decimal:
    """Parse a numeric column value into Decimal.

    Args:
        value: Numeric value returned by the driver (Decimal, int, float or text).

    Returns:
        Decimal: Parsed decimal.

    Raises:
        ValueError: Raised when value is not numeric.
    """

    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as error:
        raise ValueError(f"invalid numeric column value={value!r}") from error


def db_value_parse_optional_decimal(value: Any) -> Decimal | None:
    """Parse an optional numeric column value into Decimal."""

    if value is None:
        return None
    return db_value_parse_decimal(value)


def db_value_date_text(value: date, field_name: str) -> str:
    """Render a date as ISO parameter text.

    Args:
        value: Date value.
        field_name: Field name for deterministic error text.

    Returns:
        str: `YYYY-MM-DD` text.

    Raises:
        ValueError: Raised when value is not a date.
    """

    if isinstance(value, datetime) or not isinstance(value, date):
        raise ValueError(f"{field_name} must be a date")
    return value.isoformat()


def db_value_optional_date_text(value: date | None, field_name: str) -> str | None:
    """Render an optional date as ISO parameter text."""

    if value is None:
        return None
    return db_value_date_text(value, field_name)


def db_value_parse_date(value: Any) -> date:
    """Parse a date column value returned as date or ISO text.

    Args:
        value: Column value.

    Returns:
        date: Parsed date.

    Raises:
        ValueError: Raised when the value is not a valid date.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def db_value_parse_optional_date(value: Any) -> date | None:
    """Parse an optional date column value."""

    if value is None:
        return None
    return db_value_parse_date(value)


def db_value_parse_datetime(value: Any) -> datetime:
    """Parse a timestamp column value into an offset-aware UTC datetime.

    Args:
        value: Column value returned as datetime or ISO text.

    Returns:
        datetime: Offset-aware timestamp.

    Raises:
        ValueError: Raised when the value is not a valid timestamp.
    """

    parsed_value = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    if parsed_value.tzinfo is None:
        parsed_value = parsed_value.replace(tzinfo=timezone.utc)
    return parsed_value


def db_value_parse_optional_datetime(value: Any) -> datetime | None:
    """Parse an optional timestamp column value."""

    if value is None:
        return None
    return db_value_parse_datetime(value)


def db_value_parse_json_list(value: Any, field_name: str) -> list[dict[str, Any]]:
    """Parse a JSON array column returned as decoded list or JSON text.

    Args:
        value: Column value.
        field_name: Field name for deterministic error text.

    Returns:
        list[dict[str, Any]]: Decoded list, empty when the column is NULL.

    Raises:
        TypeError: Raised when the decoded value is not a list.
    """

    if value is None:
        return []
    decoded_value = json.loads(value) if isinstance(value, (str, bytes)) else value
    if not isinstance(decoded_value, list):
        raise TypeError(f"{field_name} must be a JSON array when present")
    return decoded_value


def db_value_utc_now_text() -> str:
    """Return the current UTC timestamp as ISO text."""

    return datetime.now(timezone.utc).isoformat()


def db_value_deterministic_id(*parts: object) -> str:
    """Build a deterministic UUID string from identity parts.

    Args:
        parts: Identity parts; None renders as an empty segment.

    Returns:
        str: uuid5 string stable across rebuilds.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    identity = ":".join("" if part is None else str(part) for part in parts)
    return str(uuid5(NAMESPACE_URL, identity))
