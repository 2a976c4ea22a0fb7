# Overview: Payload validation against model column metadata and per-entity write policies.

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, Numeric, String, Text

from .errors import InvalidInputError, ValidationError
from .serialization import to_decimal
from .time_utils import parse_iso_datetime


# Largest value a Numeric(12, 2) column can hold
MAX_MONEY = Decimal("9999999999.99")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def camel_to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub(r"_\1", name).lower()


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - non_negative_fields: numeric fields that may not go below zero
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = field(default_factory=frozenset)
    non_negative_fields: frozenset[str] = field(default_factory=frozenset)


def _columns_by_key(model) -> dict[str, Any]:
    return {c.key: c for c in model.__mapper__.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers: reject floats, bools and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or "e" in stripped.lower() or "." in stripped:
                raise ValidationError(f"{col.key} must be an integer", {"field": col.key})
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer", {"field": col.key})
        raise ValidationError(f"{col.key} must be an integer", {"field": col.key})

    if isinstance(coltype, Numeric):
        try:
            return to_decimal(value, field=col.key)
        except ValueError as exc:
            raise ValidationError(str(exc), {"field": col.key})

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise ValidationError(f"{col.key} must be a boolean", {"field": col.key})

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                dt = None
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime", {"field": col.key})
            return dt
        raise ValidationError(f"{col.key} must be a datetime", {"field": col.key})

    if isinstance(coltype, JSON):
        if not isinstance(value, dict):
            raise ValidationError(f"{col.key} must be an object", {"field": col.key})
        return value

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string", {"field": col.key})
        return str(value).strip()

    return value


def validate_payload(
    *,
    model,
    payload: dict | None,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)

    Keys arrive camelCase and are returned snake_case. tenantId and id are
    dropped silently: the tenant always comes from the session.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    data = {
        camel_to_snake(k): v
        for k, v in payload.items()
        if camel_to_snake(k) not in ("id", "tenant_id")
    }

    if not partial:
        missing = sorted(
            f for f in policy.required_on_create
            if data.get(f) is None or (isinstance(data.get(f), str) and not data[f].strip())
        )
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                {"missingFields": missing},
            )

    cols = _columns_by_key(model)

    for k in data:
        if k not in policy.writable_fields or k not in cols:
            raise ValidationError(f"Field not allowed: {k}", {"field": k})

    patch: dict = {}
    for k, raw in data.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null", {"field": k})
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable and val == "":
            raise ValidationError(f"{k} cannot be blank", {"field": k})

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}", {"field": k})

        if k in policy.non_negative_fields and val < 0:
            raise ValidationError(f"{k} must be >= 0", {"field": k})
        if isinstance(val, Decimal) and abs(val) > MAX_MONEY:
            raise ValidationError(f"{k} is out of range", {"field": k})

        patch[k] = val

    return patch


def require_positive_quantity(value, *, field_name: str = "quantity") -> Decimal:
    """Parse a quantity that must be strictly greater than zero."""
    try:
        qty = to_decimal(value, field=field_name)
    except ValueError as exc:
        raise InvalidInputError(str(exc), {"field": field_name})
    if qty <= 0:
        raise InvalidInputError(f"{field_name} must be greater than 0", {"field": field_name})
    return qty
