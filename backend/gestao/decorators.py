# Overview: Request identity and capability decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import identity_service
from .services.identity_service import Actor

USER_HEADER = "X-User-Id"


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'actor')


def require_auth(f):
    """
    Resolve the calling user from the upstream identity header.

    Sets the following Flask g attributes:
    - g.current_user: the active User row
    - g.actor: Actor stamped on documents and movements

    Returns 401 if the header is missing or names an unknown or
    inactive user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        uid = (request.headers.get(USER_HEADER) or "").strip()
        if not uid:
            return jsonify({"error": "Authentication required"}), 401

        user = identity_service.find_active_user(uid)
        if user is None:
            return jsonify({"error": "Unknown or inactive user"}), 401

        g.current_user = user
        g.actor = Actor.from_user(user)
        return f(*args, **kwargs)

    return decorated_function


def require_capability(module: str, action: str):
    """
    Require one of the module booleans (view, create, edit, inactivate).

    Enforcement lives here, in the HTTP layer; services never check
    permissions.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            capabilities = identity_service.capabilities_for(g.current_user, module)
            if not capabilities.allows(action):
                return jsonify({
                    "error": "Permission denied",
                    "module": module,
                    "action": action,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
