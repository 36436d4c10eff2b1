"""Backend query composition.

Queries are plain dicts in the backend's JSON query format::

    {"method": "equal", "attribute": "teamId", "values": ["team-1"]}

``serialize`` turns a list of them into the strings sent as ``queries[]``.
``matches`` evaluates filter queries locally, which the in-memory backend
relies on.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Optional

from flowcraft.services.models import format_timestamp, parse_timestamp


FILTER_METHODS = {
    "equal", "notEqual", "lessThan", "lessThanEqual", "greaterThan",
    "greaterThanEqual", "isNull", "isNotNull", "or", "and",
}


def _values(value) -> list:
    if isinstance(value, (list, tuple, set)):
        return [_wire_value(v) for v in value]
    return [_wire_value(value)]


def _wire_value(value):
    if isinstance(value, datetime):
        return format_timestamp(value)
    return getattr(value, "value", value)


class Query:
    """Factory for backend query dicts."""

    @staticmethod
    def equal(attribute: str, value) -> dict:
        return {"method": "equal", "attribute": attribute, "values": _values(value)}

    @staticmethod
    def not_equal(attribute: str, value) -> dict:
        return {"method": "notEqual", "attribute": attribute, "values": _values(value)}

    @staticmethod
    def less_than(attribute: str, value) -> dict:
        return {"method": "lessThan", "attribute": attribute, "values": _values(value)}

    @staticmethod
    def less_than_equal(attribute: str, value) -> dict:
        return {"method": "lessThanEqual", "attribute": attribute, "values": _values(value)}

    @staticmethod
    def greater_than(attribute: str, value) -> dict:
        return {"method": "greaterThan", "attribute": attribute, "values": _values(value)}

    @staticmethod
    def greater_than_equal(attribute: str, value) -> dict:
        return {"method": "greaterThanEqual", "attribute": attribute, "values": _values(value)}

    @staticmethod
    def is_null(attribute: str) -> dict:
        return {"method": "isNull", "attribute": attribute}

    @staticmethod
    def is_not_null(attribute: str) -> dict:
        return {"method": "isNotNull", "attribute": attribute}

    @staticmethod
    def or_(queries: list) -> dict:
        return {"method": "or", "values": list(queries)}

    @staticmethod
    def and_(queries: list) -> dict:
        return {"method": "and", "values": list(queries)}

    @staticmethod
    def limit(count: int) -> dict:
        return {"method": "limit", "values": [count]}

    @staticmethod
    def offset(count: int) -> dict:
        return {"method": "offset", "values": [count]}

    @staticmethod
    def order_asc(attribute: str) -> dict:
        return {"method": "orderAsc", "attribute": attribute}

    @staticmethod
    def order_desc(attribute: str) -> dict:
        return {"method": "orderDesc", "attribute": attribute}


def serialize(queries: list) -> list:
    """Render queries as JSON strings for the ``queries[]`` parameter."""
    return [json.dumps(q, separators=(",", ":")) for q in queries]


def comparable(value):
    """Timestamps compare as datetimes, everything else as-is."""
    if isinstance(value, str) and len(value) >= 10 and value[4:5] == "-":
        parsed = parse_timestamp(value)
        if parsed is not None:
            return parsed
    return value


def _compare(method: str, actual, expected) -> bool:
    if actual is None:
        return False
    actual, expected = comparable(actual), comparable(expected)
    try:
        if method == "lessThan":
            return actual < expected
        if method == "lessThanEqual":
            return actual <= expected
        if method == "greaterThan":
            return actual > expected
        return actual >= expected
    except TypeError:
        return False


def matches(query: dict, document: dict) -> bool:
    """Evaluate a single filter query against a document.

    Pagination and ordering queries always match.
    """
    method = query["method"]
    values = query.get("values", [])

    if method == "or":
        return any(matches(q, document) for q in values)
    if method == "and":
        return all(matches(q, document) for q in values)
    if method not in FILTER_METHODS:
        return True

    actual = document.get(query["attribute"])

    if method == "isNull":
        return actual is None
    if method == "isNotNull":
        return actual is not None
    if method == "equal":
        return any(comparable(actual) == comparable(v) for v in values)
    if method == "notEqual":
        return all(comparable(actual) != comparable(v) for v in values)

    return any(_compare(method, actual, v) for v in values)


def quarter_bounds(date: Optional[datetime] = None) -> tuple:
    """Return (start, end) of the calendar quarter containing ``date``.

    Quarters are Jan-Mar, Apr-Jun, Jul-Sep and Oct-Dec, computed in UTC. The
    end is the last millisecond of the quarter's last day.
    """
    date = parse_timestamp(date) if date is not None else datetime.now(timezone.utc)
    first_month = (date.month - 1) // 3 * 3 + 1
    start = datetime(date.year, first_month, 1, tzinfo=timezone.utc)

    if first_month == 10:
        next_start = datetime(date.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        next_start = datetime(date.year, first_month + 3, 1, tzinfo=timezone.utc)

    end = next_start - timedelta(milliseconds=1)
    return start, end

