# Overview: Shared request parsing for API routes (JSON bodies and list query parameters).

from __future__ import annotations

from decimal import Decimal

from flask import current_app, request

from ..errors import InvalidInputError
from ..serialization import to_decimal
from ..services.repository import ListQuery
from ..time_utils import end_of_day, parse_iso_datetime
from ..validation import camel_to_snake


_TRUE = ("true", "1", "yes")
_FALSE = ("false", "0", "no")


def json_body() -> dict:
    """Request JSON object; an empty body reads as {}."""
    if not request.get_data():
        return {}
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return data


def _int_arg(name: str, default: int | None) -> int | None:
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidInputError(f"{name} must be an integer", {"field": name})


def bool_arg(name: str) -> bool | None:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise InvalidInputError(f"{name} must be true or false", {"field": name})


def _filter_value(column: str, raw: str):
    if column.endswith("_id"):
        try:
            return int(raw)
        except ValueError:
            raise InvalidInputError(f"{column} must be an integer", {"field": column})
    return raw


def _decimal_arg(name: str) -> Decimal | None:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return to_decimal(raw, field=name)
    except ValueError as exc:
        raise InvalidInputError(str(exc), {"field": name})


def date_arg(name: str, *, end: bool = False):
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        value = parse_iso_datetime(raw)
    except ValueError:
        raise InvalidInputError(f"{name} must be an ISO-8601 date", {"field": name})
    return end_of_day(value) if end else value


def list_query_from_request(
    *,
    filters: dict[str, str] | None = None,
    flags: dict[str, str] | None = None,
    ranges: dict[str, str] | None = None,
    date_range: str | None = None,
) -> ListQuery:
    """
    Build a ListQuery from the query string.

    - page, pageSize (alias limit), search, sort, order
    - filters / flags: {queryParam: column}
    - ranges: {queryParam: column}; read as <param>Min / <param>Max
    - date_range: column filtered by startDate / endDate (endDate inclusive of the day)
    """
    page_size = _int_arg("pageSize", None)
    if page_size is None:
        page_size = _int_arg("limit", current_app.config["DEFAULT_PAGE_SIZE"])

    query = ListQuery(
        page=_int_arg("page", 1),
        page_size=page_size,
        search=request.args.get("search") or None,
        sort=camel_to_snake(request.args["sort"]) if request.args.get("sort") else None,
        order=request.args.get("order") or "asc",
    )

    for param, column in (filters or {}).items():
        raw = request.args.get(param)
        if raw not in (None, ""):
            query.filters[column] = _filter_value(column, raw)

    for param, column in (flags or {}).items():
        flag = bool_arg(param)
        if flag is not None:
            query.flags[column] = flag

    for param, column in (ranges or {}).items():
        low, high = _decimal_arg(f"{param}Min"), _decimal_arg(f"{param}Max")
        if low is not None or high is not None:
            query.ranges[column] = {"gte": low, "lte": high}

    if date_range:
        start, stop = date_arg("startDate"), date_arg("endDate", end=True)
        if start is not None or stop is not None:
            query.ranges[date_range] = {"gte": start, "lte": stop}

    return query.normalized(current_app.config["MAX_PAGE_SIZE"])
