# Overview: Service-layer operations for tenant users (admin user management).

"""
User Service

MULTI-TENANT: Users are managed only inside the caller's tenant. Email is
normalized to lower case and unique per tenant.

RULES:
- role must be ADMIN, MANAGER or USER
- a user referenced by sales, payments, reports, report executions or
  dashboards is never deleted (RESOURCE_IN_USE with a count per kind);
  deactivate it instead
- a user cannot delete their own account
- deactivating a user revokes all of their sessions
"""

from __future__ import annotations

from ..errors import InvalidInputError, ValidationError
from ..models import Dashboard, Payment, ReportDefinition, ReportExecutionHistory, Sale, SessionToken, User
from ..permissions import Role, validate_role
from ..validation import ModelValidationPolicy, validate_payload
from .auth_service import hash_password
from .concurrency import unit_of_work
from .repository import Dependent, TenantScopedRepository
from .session_service import revoke_all_user_sessions


USER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "email", "role", "is_active"}),
    required_on_create=frozenset({"email"}),
)

USER_FILTERS = {"role": "role"}
USER_FLAGS = {"isActive": "is_active"}


def user_repository(session, tenant_id: int) -> TenantScopedRepository:
    return TenantScopedRepository(
        session,
        tenant_id,
        User,
        resource_type="user",
        search_fields=("name", "email"),
        unique_fields=("email",),
        dependents=(
            Dependent("salesCount", Sale, "created_by_user_id"),
            Dependent("paymentsCount", Payment, "created_by_user_id"),
            Dependent("reportsCount", ReportDefinition, "created_by_user_id"),
            Dependent("reportExecutionsCount", ReportExecutionHistory, "user_id"),
            Dependent("dashboardsCount", Dashboard, "created_by_user_id"),
        ),
        sortable=("id", "name", "email", "role", "created_at"),
        default_sort="email",
    )


def _split_password(payload: dict | None) -> tuple[dict, str | None]:
    data = dict(payload or {})
    return data, data.pop("password", None)


def _normalize(patch: dict) -> None:
    if patch.get("email"):
        patch["email"] = patch["email"].lower()
    if "role" in patch:
        if not validate_role(patch["role"]):
            raise ValidationError(
                f"Invalid role: {patch['role']}",
                {"field": "role", "allowed": [r.value for r in Role]},
            )
        patch["role"] = Role(patch["role"].upper()).value


def list_users(session, tenant_id: int, list_query):
    return user_repository(session, tenant_id).find_many(list_query)


def get_user(session, tenant_id: int, user_id: int) -> User:
    return user_repository(session, tenant_id).get(user_id)


def create_user(session, tenant_id: int, payload: dict, *, bcrypt_rounds: int | None = None) -> User:
    data, password = _split_password(payload)
    if not password:
        raise ValidationError("Missing required fields: password", {"missingFields": ["password"]})

    patch = validate_payload(model=User, payload=data, policy=USER_POLICY, partial=False)
    patch.setdefault("role", Role.USER.value)
    _normalize(patch)
    patch["password_hash"] = hash_password(password, rounds=bcrypt_rounds)
    return user_repository(session, tenant_id).create(patch)


def update_user(session, tenant_id: int, user_id: int, payload: dict, *, bcrypt_rounds: int | None = None) -> User:
    data, password = _split_password(payload)
    patch = validate_payload(model=User, payload=data, policy=USER_POLICY, partial=True)
    _normalize(patch)
    if password:
        patch["password_hash"] = hash_password(password, rounds=bcrypt_rounds)

    with unit_of_work(session):
        user = user_repository(session, tenant_id).update(user_id, patch)
        if patch.get("is_active") is False or password:
            revoke_all_user_sessions(session, user.id, reason="Account updated")
    return user


def delete_user(session, tenant_id: int, user_id: int, *, acting_user_id: int | None = None) -> None:
    if acting_user_id is not None and user_id == acting_user_id:
        raise InvalidInputError("You cannot delete your own account")

    with unit_of_work(session):
        repo = user_repository(session, tenant_id)
        user = repo.get(user_id)
        blocking = repo.blocking_dependents(user.id)
        if not blocking:
            session.query(SessionToken).filter(SessionToken.user_id == user.id).delete(
                synchronize_session=False
            )
        repo.delete(user.id)
