# Overview: Flask API routes for tenant user management (MANAGE_USERS).

from flask import Blueprint, current_app, g, jsonify

from ..decorators import require_permission
from ..extensions import db
from ..permissions import Permission
from ..services import user_service
from .common import json_body, list_query_from_request


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_permission(Permission.MANAGE_USERS)
def list_users_route():
    query = list_query_from_request(filters=user_service.USER_FILTERS, flags=user_service.USER_FLAGS)
    return jsonify(user_service.list_users(db.session, g.tenant_id, query).to_dict())


@users_bp.post("")
@require_permission(Permission.MANAGE_USERS)
def create_user_route():
    """Body: {email, password, name?, role? (default USER)}"""
    user = user_service.create_user(
        db.session,
        g.tenant_id,
        json_body(),
        bcrypt_rounds=current_app.config["BCRYPT_ROUNDS"],
    )
    current_app.logger.info("User %s created by %s", user.id, g.current_user.id)
    return jsonify(user.to_dict()), 201


@users_bp.get("/<int:user_id>")
@require_permission(Permission.MANAGE_USERS)
def get_user_route(user_id: int):
    return jsonify(user_service.get_user(db.session, g.tenant_id, user_id).to_dict())


@users_bp.put("/<int:user_id>")
@users_bp.patch("/<int:user_id>")
@require_permission(Permission.MANAGE_USERS)
def update_user_route(user_id: int):
    user = user_service.update_user(
        db.session,
        g.tenant_id,
        user_id,
        json_body(),
        bcrypt_rounds=current_app.config["BCRYPT_ROUNDS"],
    )
    return jsonify(user.to_dict())


@users_bp.delete("/<int:user_id>")
@require_permission(Permission.MANAGE_USERS)
def delete_user_route(user_id: int):
    user_service.delete_user(db.session, g.tenant_id, user_id, acting_user_id=g.current_user.id)
    current_app.logger.info("User %s deleted by %s", user_id, g.current_user.id)
    return jsonify({"success": True})
