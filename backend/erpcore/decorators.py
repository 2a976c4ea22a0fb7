# Overview: Request and permission decorators for API routes.

from functools import wraps

from flask import current_app, g, request

from .services.authorization import Authorized, RequestContext


def _gate():
    return current_app.extensions["authorization_gate"]


def require_permission(permission=None):
    """
    Run the AuthorizationGate before the view.

    MULTI-TENANT: On success sets
    - g.session_context: the SessionContext
    - g.current_user: the authenticated User
    - g.tenant_id: tenant of the session (the only tenant the view may touch)

    On denial the view is never called; the denial is logged and raised so
    the error handlers render the JSON envelope (401 or 403).
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            ctx = RequestContext(
                authorization=request.headers.get("Authorization"),
                path=request.path,
                method=request.method,
            )
            result = _gate().authorize(ctx, permission)

            if not isinstance(result, Authorized):
                current_app.logger.warning(
                    "Access denied: %s %s status=%s user=%s permission=%s",
                    ctx.method,
                    ctx.path,
                    result.http_status,
                    result.user_id,
                    getattr(permission, "value", permission),
                )
                raise result.error

            g.session_context = result.session
            g.current_user = result.session.user
            g.tenant_id = result.tenant_id
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_auth(f):
    """Require a valid session; no specific permission."""
    return require_permission(None)(f)
