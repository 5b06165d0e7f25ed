# Overview: Identity and capability lookups consumed by the HTTP layer.

"""
Identity Service

WHY: Authentication happens upstream (the dashboard's auth provider); this
backend only needs to know who is acting, for attribution on documents and
movements, and which module capabilities that person holds.

Services receive an Actor and never check permissions themselves.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..constants import RecordStatus
from ..errors import EntityNotFound, ValidationFailed
from ..extensions import db
from ..models import Role, User
from ..permissions import ACTIONS, ALL_MODULES, DEFAULT_ROLES
from ..validation import to_choice, to_id, to_optional_id, to_text
from .lifecycle_service import ensure_transition
from .transaction import run_in_transaction


@dataclass(frozen=True)
class Actor:
    """Who performed an operation, as stamped on movements and documents."""
    actor_id: str
    display_name: str = "N/A"

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(actor_id=user.uid, display_name=user.display_name or "N/A")


SYSTEM_ACTOR = Actor(actor_id="system", display_name="System")


@dataclass(frozen=True)
class Capabilities:
    can_view: bool = False
    can_create: bool = False
    can_edit: bool = False
    can_inactivate: bool = False

    def allows(self, action: str) -> bool:
        return bool(getattr(self, f"can_{action}", False))


def find_active_user(uid: str | None) -> User | None:
    if not uid:
        return None
    user = db.session.query(User).filter_by(uid=uid).first()
    if user is None or not user.is_active:
        return None
    return user


def capabilities_for(user: User, module: str) -> Capabilities:
    """
    Resolve the four module booleans for a user.

    Super-admin roles get everything; otherwise missing modules or actions
    default to False.
    """
    role = user.role
    if role is None or not role.is_active:
        return Capabilities()
    if role.is_super_admin:
        return Capabilities(True, True, True, True)

    matrix = (role.permissions or {}).get(module) or {}
    return Capabilities(*(bool(matrix.get(action, False)) for action in ACTIONS))


def ensure_default_roles() -> list[Role]:
    """
    Create the default roles that do not exist yet.

    Safe to call repeatedly (idempotent).
    """
    def _op(scope):
        existing = {role.name for role in scope.query(Role)}
        created = []
        for name, (description, is_super_admin, matrix) in DEFAULT_ROLES.items():
            if name in existing:
                continue
            created.append(scope.add(Role(
                name=name,
                description=description,
                is_super_admin=is_super_admin,
                permissions=matrix,
            )))
        return created

    return run_in_transaction(_op)


def create_user(*, uid: str, email: str, display_name: str | None = None, role_name: str | None = None) -> User:
    if not uid or not uid.strip():
        raise ValidationFailed("uid is required")
    if not email or "@" not in email:
        raise ValidationFailed("a valid email is required")

    def _op(scope):
        role = None
        if role_name:
            matches = scope.query(Role, name=role_name)
            if not matches:
                raise EntityNotFound("Role", role_name)
            role = matches[0]
        if scope.query(User, uid=uid.strip()):
            raise ValidationFailed(f"user {uid} already exists")
        return scope.add(User(
            uid=uid.strip(),
            email=email.strip().lower(),
            display_name=display_name,
            role=role,
        ))

    return run_in_transaction(_op)


def list_users(*, status: str | None = None) -> list[User]:
    query = db.session.query(User)
    if status:
        query = query.filter(User.status == to_choice(status, RecordStatus, "status"))
    return query.order_by(User.email.asc()).all()


def get_user(uid: str) -> User:
    user = db.session.query(User).filter_by(uid=uid).first()
    if user is None:
        raise EntityNotFound("User", uid)
    return user


def update_user(uid: str, **fields) -> User:
    """Change a user's display name or role. A new role must be active."""
    unknown = set(fields) - {"display_name", "role_id"}
    if unknown:
        raise ValidationFailed(f"Unknown fields: {', '.join(sorted(unknown))}")
    clean = {}
    if "display_name" in fields:
        clean["display_name"] = to_text(fields["display_name"], "display_name", required=False)
    if "role_id" in fields:
        clean["role_id"] = to_optional_id(fields["role_id"], "role_id")

    def _op(scope):
        matches = scope.query(User, uid=uid, lock=True)
        if not matches:
            raise EntityNotFound("User", uid)
        user = matches[0]
        role_id = clean.get("role_id")
        if role_id is not None and role_id != user.role_id:
            role = scope.get(Role, role_id, lock=False)
            if not role.is_active:
                raise ValidationFailed(f'Role "{role.name}" is inactive')
        if clean:
            scope.update(user, **clean)
        return user

    return run_in_transaction(_op, label="update_user")


def set_user_status(uid: str, status: str) -> User:
    """An inactive user is treated as unknown by every route."""
    status = to_choice(status, RecordStatus, "status")

    def _op(scope):
        matches = scope.query(User, uid=uid, lock=True)
        if not matches:
            raise EntityNotFound("User", uid)
        user = matches[0]
        return scope.update(user, status=ensure_transition("user", user.status, status))

    return run_in_transaction(_op, label="set_user_status")


# =============================================================================
# Roles
# =============================================================================

def _clean_permissions(matrix) -> dict:
    """
    Validate a {module: {action: bool}} matrix.

    Missing actions are stored as False so every listed module carries all four.
    """
    if not isinstance(matrix, dict):
        raise ValidationFailed("permissions must be an object keyed by module")
    clean = {}
    for module, actions in matrix.items():
        if module not in ALL_MODULES:
            raise ValidationFailed(f"Unknown module '{module}'")
        if not isinstance(actions, dict):
            raise ValidationFailed(f"permissions for '{module}' must be an object")
        unknown = set(actions) - set(ACTIONS)
        if unknown:
            raise ValidationFailed(f"Unknown actions for '{module}': {', '.join(sorted(unknown))}")
        for action, allowed in actions.items():
            if not isinstance(allowed, bool):
                raise ValidationFailed(f"permissions.{module}.{action} must be true or false")
        clean[module] = {action: actions.get(action, False) for action in ACTIONS}
    return clean


def _clean_role(fields: dict, *, creating: bool) -> dict:
    unknown = set(fields) - {"name", "description", "permissions"}
    if unknown:
        raise ValidationFailed(f"Unknown fields: {', '.join(sorted(unknown))}")
    clean = {}
    if creating or "name" in fields:
        name = to_text(fields.get("name"), "name", max_length=64)
        if len(name) < 3:
            raise ValidationFailed("name must be at least 3 characters")
        clean["name"] = name
    if "description" in fields:
        clean["description"] = to_text(fields["description"], "description", required=False)
    if creating or "permissions" in fields:
        clean["permissions"] = _clean_permissions(fields.get("permissions") or {})
    return clean


def list_roles(*, status: str | None = None) -> list[Role]:
    query = db.session.query(Role)
    if status:
        query = query.filter(Role.status == to_choice(status, RecordStatus, "status"))
    return query.order_by(Role.name.asc()).all()


def get_role(role_id: int) -> Role:
    role = db.session.get(Role, to_id(role_id, "role_id"))
    if role is None:
        raise EntityNotFound("Role", role_id)
    return role


def create_role(**fields) -> Role:
    clean = _clean_role(fields, creating=True)

    def _op(scope):
        if scope.query(Role, name=clean["name"]):
            raise ValidationFailed(f"role {clean['name']} already exists")
        return scope.add(Role(status=RecordStatus.ACTIVE.value, is_super_admin=False, **clean))

    return run_in_transaction(_op, label="create_role")


def update_role(role_id: int, **fields) -> Role:
    clean = _clean_role(fields, creating=False)

    def _op(scope):
        role = scope.get(Role, role_id)
        if role.is_super_admin and "permissions" in clean:
            raise ValidationFailed("super-admin permissions cannot be edited")
        if clean.get("name") and clean["name"] != role.name:
            if scope.query(Role, name=clean["name"]):
                raise ValidationFailed(f"role {clean['name']} already exists")
        if clean:
            scope.update(role, **clean)
        return role

    return run_in_transaction(_op, label="update_role")


def set_role_status(role_id: int, status: str) -> Role:
    """Users of an inactive role keep their assignment but hold no capabilities."""
    status = to_choice(status, RecordStatus, "status")

    def _op(scope):
        role = scope.get(Role, role_id)
        return scope.update(role, status=ensure_transition("role", role.status, status))

    return run_in_transaction(_op, label="set_role_status")
