"""
Type coercion for outsource API values.

The reporting API sends most values as loosely typed JSON: ids may be
numbers or strings, dates arrive as ISO strings or "" when unset. Blank
values normalise to None so typed columns never receive "".
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

import dateutil.parser


def blank_to_none(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


def to_text(value: Any) -> Optional[str]:
    value = blank_to_none(value)
    if value is None:
        return None
    return str(value).strip()


def to_int(value: Any) -> Optional[int]:
    value = blank_to_none(value)
    if value is None:
        return None
    try:
        return int(float(value))
    except (ValueError, TypeError):
        return None


def to_float(value: Any) -> Optional[float]:
    value = blank_to_none(value)
    if value is None:
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def to_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an API timestamp. Blank → None; garbage raises ValueError so the
    reconciler reports the record instead of writing a wrong value.
    """
    value = blank_to_none(value)
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return dateutil.parser.isoparse(str(value).strip())


def to_date(value: Any) -> Optional[date]:
    parsed = to_datetime(value)
    return parsed.date() if parsed is not None else None


def to_month(value: Any) -> Optional[date]:
    """'2024-03' (or any ISO date inside the month) → date(2024, 3, 1)."""
    value = blank_to_none(value)
    if value is None:
        return None
    if isinstance(value, date):
        return value.replace(day=1)
    text = str(value).strip()
    if len(text) == 7:
        text = f"{text}-01"
    return dateutil.parser.isoparse(text).date().replace(day=1)
