# Overview: Tenant bootstrap and tenant settings.

from __future__ import annotations

from ..errors import DuplicateCodeError, InvalidInputError, NotFoundError
from ..models import Tenant
from .concurrency import unit_of_work


def normalize_code(code: str | None) -> str:
    code = (code or "").strip().upper()
    if not code:
        raise InvalidInputError("Tenant code is required", {"field": "code"})
    return code


def get_tenant(session, tenant_id: int) -> Tenant:
    tenant = session.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundError.for_resource("tenant", tenant_id)
    return tenant


def create_tenant(session, *, name: str, code: str, settings: dict | None = None) -> Tenant:
    """Create a tenant. Codes are stored upper case and are globally unique."""
    code = normalize_code(code)
    if not (name or "").strip():
        raise InvalidInputError("Tenant name is required", {"field": "name"})

    with unit_of_work(session):
        if session.query(Tenant).filter(Tenant.code == code).first() is not None:
            raise DuplicateCodeError(
                f"Tenant with code '{code}' already exists",
                {"field": "code", "value": code},
            )
        tenant = Tenant(name=name.strip(), code=code, settings=dict(settings or {}), is_active=True)
        session.add(tenant)
        session.flush()
    return tenant


def update_settings(session, tenant_id: int, changes: dict) -> Tenant:
    """Merge changes into the tenant settings; a None value removes the key."""
    with unit_of_work(session):
        tenant = get_tenant(session, tenant_id)
        merged = dict(tenant.settings or {})
        for key, value in (changes or {}).items():
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value
        tenant.settings = merged
    return tenant
