from __future__ import annotations

import copy

from ..extensions import db
from ..time_utils import to_utc_z


# Resource kinds a user can be granted view/edit/add on.
PERMISSION_RESOURCES = (
    "units",
    "licenses",
    "consumables",
    "accessories",
    "components",
    "vms",
    "users",
    "reports",
    "admin",
)
PERMISSION_ACTIONS = ("view", "edit", "add")

# Everyone can look at inventory; nothing else until granted.
DEFAULT_PERMISSIONS = {
    resource: {
        "view": resource not in ("users", "admin"),
        "edit": False,
        "add": False,
    }
    for resource in PERMISSION_RESOURCES
}


def default_permissions() -> dict:
    return copy.deepcopy(DEFAULT_PERMISSIONS)


class User(db.Model):
    """
    Accounts that can hold units and be attributed in the activity ledger.

    A user referenced by a unit holder or an activity row is never deleted
    (see user_service.delete_user); the FK constraints back that up.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(64), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    first_name = db.Column(db.String(80), nullable=False)
    last_name = db.Column(db.String(80), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    department = db.Column(db.String(128), nullable=True)

    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    permissions = db.Column(db.JSON, nullable=False, default=default_permissions)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "department": self.department,
            "is_admin": self.is_admin,
            "permissions": self.permissions,
            "created_at": to_utc_z(self.created_at),
        }
