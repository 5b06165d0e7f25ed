from __future__ import annotations

from ..extensions import db
from ..constants import RecordStatus
from gestao.time_utils import to_utc_z


class Role(db.Model):
    """
    Named permission matrix.

    permissions: {"<module>": {"view": bool, "create": bool, "edit": bool, "inactivate": bool}}
    Modules missing from the matrix grant nothing.
    """
    __tablename__ = "roles"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True)
    description = db.Column(db.String(255), nullable=True)
    permissions = db.Column(db.JSON, nullable=False, default=dict)
    is_super_admin = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(16), nullable=False, default=RecordStatus.ACTIVE.value)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE.value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "permissions": self.permissions or {},
            "is_super_admin": self.is_super_admin,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class User(db.Model):
    """
    Dashboard user as known to this backend.

    uid is the identifier issued by the external authentication provider;
    display_name is what gets stamped on movements and documents.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    uid = db.Column(db.String(128), nullable=False, unique=True, index=True)
    display_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    role_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=RecordStatus.ACTIVE.value)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    role = db.relationship("Role", backref=db.backref("users", lazy=True))

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE.value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "uid": self.uid,
            "display_name": self.display_name,
            "email": self.email,
            "role_id": self.role_id,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
