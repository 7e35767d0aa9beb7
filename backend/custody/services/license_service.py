# Overview: Service-layer operations for license seats; encapsulates business logic and database work.

"""
License seat lifecycle.

SEATS:
    assign_seat:  creates an ASSIGNED row (one seat)
    revoke_seat:  ASSIGNED -> RETURNED (seat freed, row kept for history)
    delete_license: removes every assignment row, then the license, in one commit

Seat ceiling: with ENFORCE_LICENSE_SEAT_LIMIT on (default), assign_seat is
rejected with CAPACITY_EXCEEDED once ASSIGNED rows reach License.seats. With
it off, seats are advisory and over-assignment is allowed.

Concurrent grants are serialized by bumping the license row (version_id),
so two callers racing for the last seat cannot both pass the count check.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import (
    ActivityAction,
    AssignmentStatus,
    ItemType,
    License,
    LicenseAssignment,
)
from ..time_utils import today, utcnow
from ..validation import ValidationError
from . import repository
from .activity_service import append_activity
from .concurrency import run_atomic
from .results import Failure, LifecycleResult, not_found


def seat_limit_enforced() -> bool:
    return bool(current_app.config.get("ENFORCE_LICENSE_SEAT_LIMIT", True))


def seats_in_use(license_id: int) -> int:
    return (
        db.session.query(func.count(LicenseAssignment.id))
        .filter(
            LicenseAssignment.license_id == license_id,
            LicenseAssignment.status == AssignmentStatus.ASSIGNED,
        )
        .scalar()
    ) or 0


def create_license(payload: dict, *, acting_user_id: int | None = None) -> License:
    def _op():
        lic = repository.licenses.insert(payload)
        append_activity(
            action=ActivityAction.CREATE,
            item_type=ItemType.LICENSE,
            item_id=lic.id,
            user_id=acting_user_id,
            notes=f'License "{lic.name}" created',
        )
        return lic

    return run_atomic(_op, action="license create")


def update_license(license_id: int, payload: dict, *, acting_user_id: int | None = None) -> License | None:
    """
    Patch a license. Returns None when it does not exist.

    Raises:
        ValidationError: seats lowered below the number in use while the
            seat limit is enforced
    """
    def _op():
        lic = repository.licenses.update(license_id, payload)
        if lic is None:
            return None
        if seat_limit_enforced() and "seats" in payload:
            in_use = seats_in_use(lic.id)
            if lic.seats < in_use:
                raise ValidationError(
                    f"seats cannot be lower than the {in_use} seat(s) currently assigned"
                )
        append_activity(
            action=ActivityAction.UPDATE,
            item_type=ItemType.LICENSE,
            item_id=lic.id,
            user_id=acting_user_id,
            notes=f'License "{lic.name}" updated',
        )
        return lic

    return run_atomic(_op, action="license update")


def list_assignments(license_id: int) -> list[LicenseAssignment]:
    """All assignment rows for a license, oldest grant first."""
    return (
        db.session.query(LicenseAssignment)
        .filter(LicenseAssignment.license_id == license_id)
        .order_by(LicenseAssignment.assigned_date.asc(), LicenseAssignment.id.asc())
        .all()
    )


def assign_seat(
    license_id: int,
    assignee: str,
    serial: str | None = None,
    note: str | None = None,
    *,
    acting_user_id: int | None = None,
) -> LifecycleResult:
    """
    Grant one seat of a license to an assignee.

    Returns:
        LifecycleResult with the new LicenseAssignment, or NOT_FOUND /
        CAPACITY_EXCEEDED (nothing written).
    """
    def _op():
        lic = repository.licenses.get_for_update(license_id)
        if lic is None:
            return not_found("License", license_id)

        if seat_limit_enforced():
            in_use = seats_in_use(lic.id)
            if in_use >= lic.seats:
                return LifecycleResult.rejected(
                    Failure.CAPACITY_EXCEEDED,
                    f'License "{lic.name}" has no free seats ({in_use}/{lic.seats} assigned)',
                )

        # Touch the license so a concurrent grant fails its version check
        lic.updated_at = utcnow()

        assignment = repository.license_assignments.insert(
            {"assignee": assignee, "serial": serial, "notes": note},
            license_id=lic.id,
            assigned_date=today(),
            status=AssignmentStatus.ASSIGNED,
        )
        append_activity(
            action=ActivityAction.UPDATE,
            item_type=ItemType.LICENSE,
            item_id=lic.id,
            user_id=acting_user_id,
            notes=f"License seat assigned to: {assignment.assignee}",
        )
        return LifecycleResult.success(assignment)

    result = run_atomic(_op, action="license seat assignment")
    if not result.ok:
        current_app.logger.info("Seat assignment on license %s rejected: %s", license_id, result.message)
    return result


def revoke_seat(assignment_id: int, *, acting_user_id: int | None = None) -> LifecycleResult:
    """Free a seat (ASSIGNED -> RETURNED)."""
    def _op():
        assignment = repository.license_assignments.get_for_update(assignment_id)
        if assignment is None:
            return not_found("License assignment", assignment_id)
        if assignment.status != AssignmentStatus.ASSIGNED:
            return LifecycleResult.rejected(
                Failure.INVALID_TRANSITION,
                f"License assignment {assignment_id} is already '{assignment.status.value}'",
            )

        assignment.status = AssignmentStatus.RETURNED
        assignment.returned_date = today()
        db.session.flush()

        append_activity(
            action=ActivityAction.UPDATE,
            item_type=ItemType.LICENSE,
            item_id=assignment.license_id,
            user_id=acting_user_id,
            notes=f"License seat revoked from: {assignment.assignee}",
        )
        return LifecycleResult.success(assignment)

    return run_atomic(_op, action="license seat revocation")


def delete_license(license_id: int, *, acting_user_id: int | None = None) -> LifecycleResult:
    """
    Delete a license and every assignment row it owns.

    Active seats are discarded, not returned; there is no confirmation step.
    Assignments go first (FK), then the license, then one DELETE activity,
    all in one commit.
    """
    def _op():
        lic = repository.licenses.get_for_update(license_id)
        if lic is None:
            return not_found("License", license_id)

        assignments = (
            db.session.query(LicenseAssignment)
            .filter(LicenseAssignment.license_id == license_id)
            .with_for_update()
            .all()
        )
        for assignment in assignments:
            db.session.delete(assignment)
        db.session.flush()

        name = lic.name
        repository.licenses.delete(license_id)
        append_activity(
            action=ActivityAction.DELETE,
            item_type=ItemType.LICENSE,
            item_id=license_id,
            user_id=acting_user_id,
            notes=f'License "{name}" deleted ({len(assignments)} assignment(s) removed)',
        )
        return LifecycleResult.success({"id": license_id, "removed_assignments": len(assignments)})

    return run_atomic(_op, action="license delete")
