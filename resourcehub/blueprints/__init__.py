"""
ResourceHub
Blueprint registry.
"""

from flask import request


def page_args(default_limit=20, max_limit=100):
    """Read page/limit pagination from the query string.

    Query params:
        page  1-based page number (default 1)
        limit: items per page (default 20, capped at max_limit)

    Returns:
        (page, limit)
    """
    try:
        limit = min(max(int(request.args.get("limit", default_limit)), 1), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        page = max(int(request.args.get("page", 1)), 1)
    except (ValueError, TypeError):
        page = 1
    return page, limit


def json_body() -> dict:
    """The request's JSON object, or an empty dict for a missing/non-object body."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
