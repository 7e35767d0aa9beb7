# Overview: Service-layer operations for unit custody; encapsulates business logic and database work.

"""
Unit Custody Lifecycle Service

================================================================================
PURPOSE: Move equipment units between custody states and record every move
================================================================================

STATE MACHINE (cycles; no terminal state in the checkout loop):
    AVAILABLE -> (checkout) -> DEPLOYED -> (checkin) -> AVAILABLE
    DEPLOYED  -> (mark_overdue, batch) -> OVERDUE -> (checkin) -> AVAILABLE
    AVAILABLE -> (archive) -> ARCHIVED   (administrative, one-way)

    PENDING is set by intake outside this module and only leaves it through
    an administrative update.

RULES:
1. holder_id is set iff status is DEPLOYED or OVERDUE.
2. AVAILABLE units carry no holder, checkout date, expected return date or
   external id.
3. Every transition appends exactly one activity row in the same commit.
4. Rejected transitions change nothing and come back as a LifecycleResult,
   not an exception. Checking in a unit that is not out is a benign no-op.
5. Precondition check and write are serialized per unit (row lock +
   version_id); the loser of a race is retried and sees the new state.
================================================================================
"""

from __future__ import annotations

from datetime import date

from flask import current_app

from ..extensions import db
from ..models import (
    ActivityAction,
    HELD_UNIT_STATUSES,
    ItemType,
    Unit,
    UnitStatus,
)
from ..time_utils import today
from ..validation import ValidationError
from . import repository
from .activity_service import append_activity
from .concurrency import run_atomic
from .results import Failure, LifecycleResult, not_found


# Statuses each operation may start from
_ALLOWED_FROM: dict[str, frozenset[UnitStatus]] = {
    "checkout": frozenset({UnitStatus.AVAILABLE}),
    "checkin": HELD_UNIT_STATUSES,
    "archive": frozenset({UnitStatus.AVAILABLE}),
    "mark_overdue": frozenset({UnitStatus.DEPLOYED}),
    "delete": frozenset({UnitStatus.AVAILABLE, UnitStatus.PENDING, UnitStatus.ARCHIVED}),
}


def can_transition(operation: str, status: UnitStatus) -> bool:
    """
    Check whether a unit in `status` may undergo `operation`.

    Raises:
        ValueError: unknown operation or status
    """
    if operation not in _ALLOWED_FROM:
        raise ValueError(f"Unknown unit operation '{operation}'")
    return UnitStatus(status) in _ALLOWED_FROM[operation]


def custody_violations(unit: Unit) -> list[str]:
    """Return the custody rules this unit currently breaks (empty when consistent)."""
    problems = []
    held = unit.status in HELD_UNIT_STATUSES
    if held and unit.holder_id is None:
        problems.append(f"status '{unit.status.value}' requires a holder")
    if not held and unit.holder_id is not None:
        problems.append(f"status '{unit.status.value}' must not have a holder")
    if unit.status == UnitStatus.AVAILABLE:
        for field in ("checkout_date", "expected_return_date", "external_id"):
            if getattr(unit, field) is not None:
                problems.append(f"available unit has {field} set")
    return problems


def _invalid(unit: Unit, operation: str) -> LifecycleResult:
    allowed = ", ".join(sorted(s.value for s in _ALLOWED_FROM[operation]))
    return LifecycleResult.rejected(
        Failure.INVALID_TRANSITION,
        f"Cannot {operation.replace('_', ' ')} unit {unit.tag}: "
        f"current status is '{unit.status.value}', must be one of: {allowed}",
    )


def _log_rejection(operation: str, unit_id: int, result: LifecycleResult) -> None:
    if not result.ok:
        current_app.logger.info("Unit %s %s rejected: %s", unit_id, operation, result.message)


def get_unit_by_tag(tag: str) -> Unit | None:
    return repository.units.first_by(tag=tag)


def create_unit(payload: dict, *, acting_user_id: int | None = None) -> Unit:
    """
    Register a new unit (always starts AVAILABLE).

    Raises:
        ValidationError: bad or missing fields
        ConflictError: duplicate tag
    """
    def _op():
        unit = repository.units.insert(payload, status=UnitStatus.AVAILABLE)
        append_activity(
            action=ActivityAction.CREATE,
            item_type=ItemType.UNIT,
            item_id=unit.id,
            user_id=acting_user_id,
            notes=f"Unit {unit.name} ({unit.tag}) created",
        )
        return unit

    return run_atomic(_op, action="unit create")


def update_unit(unit_id: int, payload: dict, *, acting_user_id: int | None = None) -> Unit | None:
    """
    Patch descriptive fields. Tag, status and custody fields are not writable
    here; use the transition functions.

    Returns None when the unit does not exist.

    Raises:
        ValidationError: external_id set on a unit that is not checked out
    """
    def _op():
        unit = repository.units.get_for_update(unit_id)
        if unit is None:
            return None
        if isinstance(payload, dict) and payload.get("external_id") is not None \
                and unit.status not in HELD_UNIT_STATUSES:
            raise ValidationError(
                f"external_id can only be set while unit {unit.tag} is checked out "
                f"(current status '{unit.status.value}')"
            )
        unit = repository.units.update(unit_id, payload)
        append_activity(
            action=ActivityAction.UPDATE,
            item_type=ItemType.UNIT,
            item_id=unit.id,
            user_id=acting_user_id,
            notes=f"Unit {unit.name} ({unit.tag}) updated",
        )
        return unit

    return run_atomic(_op, action="unit update")


def delete_unit(unit_id: int, *, acting_user_id: int | None = None) -> LifecycleResult:
    """Delete a unit that nobody holds."""
    def _op():
        unit = repository.units.get_for_update(unit_id)
        if unit is None:
            return not_found("Unit", unit_id)
        if not can_transition("delete", unit.status):
            return _invalid(unit, "delete")

        name, tag = unit.name, unit.tag
        repository.units.delete(unit_id)
        append_activity(
            action=ActivityAction.DELETE,
            item_type=ItemType.UNIT,
            item_id=unit_id,
            user_id=acting_user_id,
            notes=f"Unit {name} ({tag}) deleted",
        )
        return LifecycleResult.success({"id": unit_id, "tag": tag})

    result = run_atomic(_op, action="unit delete")
    _log_rejection("delete", unit_id, result)
    return result


def checkout_unit(
    unit_id: int,
    user_id: int,
    expected_return_date: date | None = None,
    note: str | None = None,
) -> LifecycleResult:
    """
    Check out an AVAILABLE unit to a user (AVAILABLE -> DEPLOYED).

    Args:
        unit_id: Unit to check out
        user_id: User who takes custody (recorded as the activity actor)
        expected_return_date: Optional due date
        note: Activity note; defaults to a generated description

    Returns:
        LifecycleResult with the updated Unit, or a NOT_FOUND /
        INVALID_TRANSITION rejection (nothing written).
    """
    if expected_return_date is not None and not isinstance(expected_return_date, date):
        raise ValidationError("expected_return_date must be a date")

    def _op():
        unit = repository.units.get_for_update(unit_id)
        if unit is None:
            return not_found("Unit", unit_id)
        user = repository.users.get(user_id)
        if user is None:
            return not_found("User", user_id)
        if not can_transition("checkout", unit.status):
            return _invalid(unit, "checkout")

        unit.status = UnitStatus.DEPLOYED
        unit.holder_id = user.id
        unit.checkout_date = today()
        unit.expected_return_date = expected_return_date
        db.session.flush()

        append_activity(
            action=ActivityAction.CHECKOUT,
            item_type=ItemType.UNIT,
            item_id=unit.id,
            user_id=user.id,
            notes=note or f"Unit {unit.name} ({unit.tag}) checked out to {user.display_name}",
        )
        return LifecycleResult.success(unit)

    result = run_atomic(_op, action="unit checkout")
    _log_rejection("checkout", unit_id, result)
    return result


def checkin_unit(unit_id: int, note: str | None = None) -> LifecycleResult:
    """
    Return a DEPLOYED or OVERDUE unit to stock (-> AVAILABLE).

    The activity is attributed to the previous holder. Units that are not
    out come back as a rejection with nothing written; callers treat that
    as "nothing to check in".
    """
    def _op():
        unit = repository.units.get_for_update(unit_id)
        if unit is None:
            return not_found("Unit", unit_id)
        if not can_transition("checkin", unit.status):
            return _invalid(unit, "checkin")

        previous_holder_id = unit.holder_id

        unit.status = UnitStatus.AVAILABLE
        unit.holder_id = None
        unit.checkout_date = None
        unit.expected_return_date = None
        unit.external_id = None
        db.session.flush()

        append_activity(
            action=ActivityAction.CHECKIN,
            item_type=ItemType.UNIT,
            item_id=unit.id,
            user_id=previous_holder_id,
            notes=note or f"Unit {unit.name} ({unit.tag}) checked in",
        )
        return LifecycleResult.success(unit)

    result = run_atomic(_op, action="unit checkin")
    _log_rejection("checkin", unit_id, result)
    return result


def archive_unit(unit_id: int, *, acting_user_id: int | None = None, note: str | None = None) -> LifecycleResult:
    """Retire an AVAILABLE unit (AVAILABLE -> ARCHIVED)."""
    def _op():
        unit = repository.units.get_for_update(unit_id)
        if unit is None:
            return not_found("Unit", unit_id)
        if not can_transition("archive", unit.status):
            return _invalid(unit, "archive")

        unit.status = UnitStatus.ARCHIVED
        db.session.flush()

        append_activity(
            action=ActivityAction.UPDATE,
            item_type=ItemType.UNIT,
            item_id=unit.id,
            user_id=acting_user_id,
            notes=note or f"Unit {unit.name} ({unit.tag}) archived",
        )
        return LifecycleResult.success(unit)

    result = run_atomic(_op, action="unit archive")
    _log_rejection("archive", unit_id, result)
    return result


def mark_overdue_units(as_of: date | None = None) -> list[Unit]:
    """
    Flag DEPLOYED units whose expected return date is before `as_of`.

    Batch entry point for an external scheduler or the CLI; nothing in this
    package calls it on a timer. System action, so activities carry no user.
    """
    cutoff = as_of or today()

    def _op():
        due = (
            db.session.query(Unit)
            .filter(
                Unit.status == UnitStatus.DEPLOYED,
                Unit.expected_return_date.isnot(None),
                Unit.expected_return_date < cutoff,
            )
            .order_by(Unit.id.asc())
            .with_for_update()
            .all()
        )
        for unit in due:
            unit.status = UnitStatus.OVERDUE
        db.session.flush()

        for unit in due:
            append_activity(
                action=ActivityAction.UPDATE,
                item_type=ItemType.UNIT,
                item_id=unit.id,
                notes=(
                    f"Unit {unit.name} ({unit.tag}) overdue: "
                    f"expected back {unit.expected_return_date.isoformat()}"
                ),
            )
        return due

    flagged = run_atomic(_op, action="mark overdue")
    if flagged:
        current_app.logger.info("Marked %s unit(s) overdue as of %s", len(flagged), cutoff.isoformat())
    return flagged
