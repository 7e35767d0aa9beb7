# Overview: Service-layer operations for users; encapsulates business logic and database work.

"""
Users hold units and are attributed in the activity ledger.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, upper, lower, digit and special char required

REFERENTIAL RULE: a user who holds a unit or appears in any activity row is
never deleted; delete_user raises ConflictError instead of nulling the
references.
"""

import re

import bcrypt

from ..extensions import db
from ..models import (
    Activity,
    ActivityAction,
    ItemType,
    PERMISSION_ACTIONS,
    PERMISSION_RESOURCES,
    Unit,
    User,
)
from ..models.users import default_permissions
from ..validation import ConflictError, ValidationError
from . import repository
from .activity_service import append_activity
from .concurrency import run_atomic


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def get_user_by_username(username: str) -> User | None:
    return repository.users.first_by(username=username)


def create_user(payload: dict, password: str, *, acting_user_id: int | None = None) -> User:
    """
    Create a user with a bcrypt-hashed password and the default permissions
    (unless payload carries its own).

    Raises:
        PasswordValidationError: weak password
        ValidationError: bad or missing fields
        ConflictError: username already taken
    """
    password_hash = hash_password(password)

    def _op():
        system_fields = {"password_hash": password_hash}
        if "permissions" not in payload:
            system_fields["permissions"] = default_permissions()
        user = repository.users.insert(payload, **system_fields)
        append_activity(
            action=ActivityAction.CREATE,
            item_type=ItemType.USER,
            item_id=user.id,
            user_id=acting_user_id,
            notes=f"User {user.username} created",
        )
        return user

    return run_atomic(_op, action="user create")


def update_user(user_id: int, payload: dict, *, acting_user_id: int | None = None) -> User | None:
    def _op():
        user = repository.users.update(user_id, payload)
        if user is None:
            return None
        append_activity(
            action=ActivityAction.UPDATE,
            item_type=ItemType.USER,
            item_id=user.id,
            user_id=acting_user_id,
            notes=f"User {user.username} updated",
        )
        return user

    return run_atomic(_op, action="user update")


def delete_user(user_id: int, *, acting_user_id: int | None = None) -> bool:
    """
    Delete an unreferenced user. Returns False when the user does not exist.

    Raises:
        ConflictError: user holds a unit, appears in the activity ledger,
            or is deleting themselves
    """
    def _op():
        user = repository.users.get_for_update(user_id)
        if user is None:
            return False
        if acting_user_id == user_id:
            raise ConflictError("Users cannot delete their own account")

        held = db.session.query(Unit.id).filter(Unit.holder_id == user_id).count()
        if held:
            raise ConflictError(f"User {user.username} still holds {held} unit(s)")

        referenced = db.session.query(Activity.id).filter(Activity.user_id == user_id).count()
        if referenced:
            raise ConflictError(f"User {user.username} is referenced by {referenced} activity row(s)")

        username = user.username
        repository.users.delete(user_id)
        append_activity(
            action=ActivityAction.DELETE,
            item_type=ItemType.USER,
            item_id=user_id,
            user_id=acting_user_id,
            notes=f"User {username} deleted",
        )
        return True

    return run_atomic(_op, action="user delete")


def _check_permission_key(resource: str, action: str) -> None:
    if resource not in PERMISSION_RESOURCES:
        raise ValidationError(f"Unknown permission resource '{resource}'")
    if action not in PERMISSION_ACTIONS:
        raise ValidationError(f"Unknown permission action '{action}'")


def has_permission(user: User, resource: str, action: str) -> bool:
    """Admins can do everything; everyone else per their permission map."""
    _check_permission_key(resource, action)
    if user.is_admin:
        return True
    return bool((user.permissions or {}).get(resource, {}).get(action, False))


def set_permission(
    user_id: int,
    resource: str,
    action: str,
    allowed: bool,
    *,
    acting_user_id: int | None = None,
) -> User | None:
    _check_permission_key(resource, action)

    def _op():
        user = repository.users.get_for_update(user_id)
        if user is None:
            return None
        permissions = {k: dict(v) for k, v in (user.permissions or default_permissions()).items()}
        permissions.setdefault(resource, {})[action] = bool(allowed)
        # Reassign so the JSON column is marked dirty
        user.permissions = permissions
        db.session.flush()
        append_activity(
            action=ActivityAction.UPDATE,
            item_type=ItemType.USER,
            item_id=user.id,
            user_id=acting_user_id,
            notes=f"User {user.username} permission {resource}.{action} set to {bool(allowed)}",
        )
        return user

    return run_atomic(_op, action="user permission change")
