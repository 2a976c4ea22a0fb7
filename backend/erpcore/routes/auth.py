# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /api/auth/login        {tenantCode, email, password} -> bearer token
- POST /api/auth/logout       revoke the presented token
- GET  /api/auth/me           current user, tenant and granted permissions
- GET  /api/auth/permissions  permission catalog with the caller's grants

Self-registration does not exist; users are created by tenant admins
(POST /api/users) or the CLI.
"""

from datetime import timedelta

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..permissions import PERMISSION_DEFINITIONS, get_role_permissions
from ..services import auth_service, session_service
from ..services.authorization import RequestContext
from ..time_utils import to_utc_z
from .common import json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create a session token.

    The token goes in the Authorization header ("Bearer <token>") of every
    protected request. The tenant of the session is fixed at login.
    """
    data = json_body()
    user = auth_service.authenticate(
        db.session,
        tenant_code=data.get("tenantCode") or "",
        email=data.get("email") or "",
        password=data.get("password") or "",
    )

    record, token = session_service.create_session(
        db.session,
        user,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
        absolute_timeout=timedelta(hours=current_app.config["SESSION_HOURS"]),
    )
    current_app.logger.info("Login user=%s tenant=%s", user.id, user.tenant_id)

    return jsonify({
        "token": token,
        "expiresAt": to_utc_z(record.expires_at),
        "user": user.to_dict(),
        "tenant": user.tenant.to_dict(),
        "permissions": get_role_permissions(user.role),
    })


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = RequestContext(authorization=request.headers.get("Authorization")).bearer_token
    session_service.revoke_session(db.session, token)
    current_app.logger.info("Logout user=%s session=%s", g.current_user.id, g.session_context.token.id)
    return jsonify({"success": True})


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "tenant": user.tenant.to_dict(),
        "permissions": get_role_permissions(user.role),
    })


@auth_bp.get("/permissions")
@require_auth
def permissions_route():
    """Full permission catalog, each entry flagged with whether the caller holds it."""
    granted = set(get_role_permissions(g.current_user.role))
    return jsonify({
        "role": g.current_user.role,
        "permissions": [
            {
                "code": perm.value,
                "name": name,
                "description": description,
                "category": category,
                "granted": perm.value in granted,
            }
            for perm, name, description, category in PERMISSION_DEFINITIONS
        ],
    })
