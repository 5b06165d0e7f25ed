# Overview: Flask API routes for role and user administration.

"""Role and user admin routes"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import CoreError
from ..permissions import Module
from ..services import identity_service
from ..decorators import require_auth, require_capability


roles_bp = Blueprint("roles", __name__, url_prefix="/api/roles")
users_bp = Blueprint("users", __name__, url_prefix="/api/users")


# =============================================================================
# Roles
# =============================================================================

@roles_bp.post("")
@require_auth
@require_capability(Module.ROLES, "create")
def create_role_route():
    """Body: name, description, permissions {module: {view, create, edit, inactivate}}"""
    try:
        data = request.get_json(silent=True) or {}
        role = identity_service.create_role(**data)
        return jsonify({"role": role.to_dict()}), 201
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create role")
        return jsonify({"error": "Internal server error"}), 500


@roles_bp.get("")
@require_auth
@require_capability(Module.ROLES, "view")
def list_roles_route():
    try:
        roles = identity_service.list_roles(status=request.args.get("status"))
        return jsonify({"roles": [role.to_dict() for role in roles]}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code


@roles_bp.get("/<int:role_id>")
@require_auth
@require_capability(Module.ROLES, "view")
def get_role_route(role_id: int):
    try:
        role = identity_service.get_role(role_id)
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"role": role.to_dict()}), 200


@roles_bp.patch("/<int:role_id>")
@require_auth
@require_capability(Module.ROLES, "edit")
def update_role_route(role_id: int):
    try:
        data = request.get_json(silent=True) or {}
        role = identity_service.update_role(role_id, **data)
        return jsonify({"role": role.to_dict()}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update role")
        return jsonify({"error": "Internal server error"}), 500


@roles_bp.post("/<int:role_id>/status")
@require_auth
@require_capability(Module.ROLES, "inactivate")
def set_role_status_route(role_id: int):
    try:
        data = request.get_json(silent=True) or {}
        role = identity_service.set_role_status(role_id, data.get("status"))
        return jsonify({"role": role.to_dict()}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change role status")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# Users
# =============================================================================

@users_bp.post("")
@require_auth
@require_capability(Module.USERS, "create")
def create_user_route():
    """Body: uid, email, display_name, role_name"""
    try:
        data = request.get_json(silent=True) or {}
        user = identity_service.create_user(
            uid=data.get("uid"),
            email=data.get("email"),
            display_name=data.get("display_name"),
            role_name=data.get("role_name"),
        )
        return jsonify({"user": user.to_dict()}), 201
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.get("")
@require_auth
@require_capability(Module.USERS, "view")
def list_users_route():
    try:
        users = identity_service.list_users(status=request.args.get("status"))
        return jsonify({"users": [user.to_dict() for user in users]}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code


@users_bp.get("/<uid>")
@require_auth
@require_capability(Module.USERS, "view")
def get_user_route(uid: str):
    try:
        user = identity_service.get_user(uid)
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"user": user.to_dict()}), 200


@users_bp.patch("/<uid>")
@require_auth
@require_capability(Module.USERS, "edit")
def update_user_route(uid: str):
    """Body: display_name, role_id"""
    try:
        data = request.get_json(silent=True) or {}
        user = identity_service.update_user(uid, **data)
        return jsonify({"user": user.to_dict()}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.post("/<uid>/status")
@require_auth
@require_capability(Module.USERS, "inactivate")
def set_user_status_route(uid: str):
    try:
        data = request.get_json(silent=True) or {}
        user = identity_service.set_user_status(uid, data.get("status"))
        return jsonify({"user": user.to_dict()}), 200
    except CoreError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change user status")
        return jsonify({"error": "Internal server error"}), 500
