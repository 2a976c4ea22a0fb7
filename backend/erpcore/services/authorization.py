# Overview: Authorization gate; resolves the caller and checks one permission before any data access.

"""
AuthorizationGate

    authorize(request_context, permission) -> Authorized | Denied

1. The injected resolver maps the bearer token to a SessionContext.
   Missing or invalid -> Denied(401, UNAUTHORIZED).
2. The role from the session must hold the permission.
   Otherwise -> Denied(403, FORBIDDEN).
3. Authorized(session) carries user_id, tenant_id and role.

permission=None means "authenticated only".

The gate never touches business data; route decorators call it first and
only invoke the handler on Authorized.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from ..errors import ForbiddenError, ServiceError, UnauthorizedError
from ..permissions import Permission, has_permission
from .session_service import SessionContext


@dataclass(frozen=True)
class RequestContext:
    authorization: Optional[str] = None
    path: str = ""
    method: str = "GET"

    @property
    def bearer_token(self) -> Optional[str]:
        header = (self.authorization or "").strip()
        if not header.lower().startswith("bearer "):
            return None
        token = header.split(" ", 1)[1].strip()
        return token or None


@dataclass(frozen=True)
class Authorized:
    session: SessionContext

    @property
    def user_id(self) -> int:
        return self.session.user_id

    @property
    def tenant_id(self) -> int:
        return self.session.tenant_id

    @property
    def role(self) -> str:
        return self.session.role


@dataclass(frozen=True)
class Denied:
    error: ServiceError
    user_id: Optional[int] = None

    @property
    def http_status(self) -> int:
        return self.error.http_status

    @property
    def error_body(self) -> dict:
        return self.error.to_dict()


class AuthorizationGate:
    def __init__(self, resolver: Callable[[str], Optional[SessionContext]]):
        self._resolve = resolver

    def authorize(
        self,
        request_context: RequestContext,
        permission: Optional[Permission] = None,
    ) -> Authorized | Denied:
        token = request_context.bearer_token
        if token is None:
            return Denied(UnauthorizedError("Authentication required"))

        context = self._resolve(token)
        if context is None:
            return Denied(UnauthorizedError("Invalid or expired session"))

        if permission is not None and not has_permission(context.role, permission):
            return Denied(
                ForbiddenError(
                    "Permission denied",
                    details={"requiredPermission": Permission(permission).value},
                ),
                user_id=context.user_id,
            )

        return Authorized(context)
