"""Shared request helpers used by services and blueprints.

parse_date:     lenient date parsing (returns None on bad input)
parse_int_arg:  query-string integer with default and bounds
"""
from datetime import date, datetime

from flask import request


def parse_date(value):
    """Parse a date string (ISO date or ISO datetime) to a date object.

    Returns None for empty/invalid input.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except (ValueError, TypeError):
        return None


def parse_int_arg(name, default, minimum=None, maximum=None):
    """Read an integer query parameter, falling back to ``default`` when malformed."""
    try:
        value = int(request.args.get(name, default))
    except (TypeError, ValueError):
        value = default
    if minimum is not None:
        value = max(value, minimum)
    if maximum is not None:
        value = min(value, maximum)
    return value
