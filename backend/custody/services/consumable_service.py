# Overview: Service-layer operations for consumable stock; encapsulates business logic and database work.

"""
Consumable stock lifecycle.

    assign_stock:  quantity -= n, new ASSIGNED row carrying n
    return_stock:  ASSIGNED -> RETURNED, quantity += the row's n

RULES:
1. quantity never goes negative; a request larger than the stock on hand is
   rejected with CAPACITY_EXCEEDED and nothing is debited.
2. A return credits exactly what its assignment debited.
3. A consumable with outstanding (ASSIGNED) rows cannot be deleted. Returned
   rows are history and are removed together with the consumable.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import (
    ActivityAction,
    AssignmentStatus,
    Consumable,
    ConsumableAssignment,
    ItemType,
)
from ..time_utils import today
from ..validation import ValidationError
from . import repository
from .activity_service import append_activity
from .concurrency import run_atomic
from .results import Failure, LifecycleResult, not_found


def _require_quantity(quantity) -> int:
    # Callers normalize input with validation.coerce_quantity; only ints get here.
    if not isinstance(quantity, int) or isinstance(quantity, bool):
        raise ValidationError("quantity must be an integer")
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    return quantity


def create_consumable(payload: dict, *, acting_user_id: int | None = None) -> Consumable:
    def _op():
        consumable = repository.consumables.insert(payload)
        append_activity(
            action=ActivityAction.CREATE,
            item_type=ItemType.CONSUMABLE,
            item_id=consumable.id,
            user_id=acting_user_id,
            notes=f'Consumable "{consumable.name}" created',
        )
        return consumable

    return run_atomic(_op, action="consumable create")


def update_consumable(consumable_id: int, payload: dict, *, acting_user_id: int | None = None) -> Consumable | None:
    """Patch a consumable (including restock via quantity). None when missing."""
    def _op():
        consumable = repository.consumables.update(consumable_id, payload)
        if consumable is None:
            return None
        append_activity(
            action=ActivityAction.UPDATE,
            item_type=ItemType.CONSUMABLE,
            item_id=consumable.id,
            user_id=acting_user_id,
            notes=f'Consumable "{consumable.name}" updated',
        )
        return consumable

    return run_atomic(_op, action="consumable update")


def outstanding_assignments(consumable_id: int) -> list[ConsumableAssignment]:
    return (
        db.session.query(ConsumableAssignment)
        .filter(
            ConsumableAssignment.consumable_id == consumable_id,
            ConsumableAssignment.status == AssignmentStatus.ASSIGNED,
        )
        .order_by(ConsumableAssignment.id.asc())
        .all()
    )


def delete_consumable(consumable_id: int, *, acting_user_id: int | None = None) -> LifecycleResult:
    """
    Delete a consumable with no outstanding assignments.

    Returns INVALID_TRANSITION while any stock is still handed out; return
    it first.
    """
    def _op():
        consumable = repository.consumables.get_for_update(consumable_id)
        if consumable is None:
            return not_found("Consumable", consumable_id)

        outstanding = outstanding_assignments(consumable_id)
        if outstanding:
            return LifecycleResult.rejected(
                Failure.INVALID_TRANSITION,
                f'Cannot delete consumable "{consumable.name}": '
                f"{len(outstanding)} assignment(s) still outstanding",
            )

        returned = (
            db.session.query(ConsumableAssignment)
            .filter(ConsumableAssignment.consumable_id == consumable_id)
            .all()
        )
        for assignment in returned:
            db.session.delete(assignment)
        db.session.flush()

        name = consumable.name
        repository.consumables.delete(consumable_id)
        append_activity(
            action=ActivityAction.DELETE,
            item_type=ItemType.CONSUMABLE,
            item_id=consumable_id,
            user_id=acting_user_id,
            notes=f'Consumable "{name}" deleted',
        )
        return LifecycleResult.success({"id": consumable_id})

    result = run_atomic(_op, action="consumable delete")
    if not result.ok:
        current_app.logger.info("Consumable %s delete rejected: %s", consumable_id, result.message)
    return result


def list_assignments(consumable_id: int) -> list[ConsumableAssignment]:
    return (
        db.session.query(ConsumableAssignment)
        .filter(ConsumableAssignment.consumable_id == consumable_id)
        .order_by(ConsumableAssignment.assigned_date.asc(), ConsumableAssignment.id.asc())
        .all()
    )


def assign_stock(
    consumable_id: int,
    assignee: str,
    quantity: int = 1,
    serial: str | None = None,
    external_id: str | None = None,
    note: str | None = None,
    *,
    acting_user_id: int | None = None,
) -> LifecycleResult:
    """
    Hand out `quantity` units of a consumable.

    Returns:
        LifecycleResult with the new ConsumableAssignment, or NOT_FOUND /
        CAPACITY_EXCEEDED (no partial debit).

    Raises:
        ValidationError: quantity is not a positive int
    """
    quantity = _require_quantity(quantity)

    def _op():
        consumable = repository.consumables.get_for_update(consumable_id)
        if consumable is None:
            return not_found("Consumable", consumable_id)

        if consumable.quantity < quantity:
            return LifecycleResult.rejected(
                Failure.CAPACITY_EXCEEDED,
                f'Insufficient stock for consumable "{consumable.name}". '
                f"On-hand: {consumable.quantity}, requested: {quantity}",
            )

        consumable.quantity = consumable.quantity - quantity
        assignment = repository.consumable_assignments.insert(
            {
                "assignee": assignee,
                "serial": serial,
                "external_id": external_id,
                "notes": note,
            },
            consumable_id=consumable.id,
            quantity=quantity,
            assigned_date=today(),
            status=AssignmentStatus.ASSIGNED,
        )
        append_activity(
            action=ActivityAction.CHECKOUT,
            item_type=ItemType.CONSUMABLE,
            item_id=consumable.id,
            user_id=acting_user_id,
            notes=f"Consumable assigned to {assignment.assignee} (qty {quantity})",
        )
        return LifecycleResult.success(assignment)

    result = run_atomic(_op, action="consumable assignment")
    if not result.ok:
        current_app.logger.info("Stock assignment on consumable %s rejected: %s", consumable_id, result.message)
    return result


def return_stock(assignment_id: int, *, acting_user_id: int | None = None) -> LifecycleResult:
    """
    Return an ASSIGNED consumable grant and credit its quantity back.

    Returns:
        LifecycleResult with the updated ConsumableAssignment, or NOT_FOUND /
        INVALID_TRANSITION (already returned).
    """
    def _op():
        assignment = repository.consumable_assignments.get_for_update(assignment_id)
        if assignment is None:
            return not_found("Consumable assignment", assignment_id)
        if assignment.status != AssignmentStatus.ASSIGNED:
            return LifecycleResult.rejected(
                Failure.INVALID_TRANSITION,
                f"Consumable assignment {assignment_id} is already '{assignment.status.value}'",
            )

        consumable = repository.consumables.get_for_update(assignment.consumable_id)
        consumable.quantity = consumable.quantity + assignment.quantity

        assignment.status = AssignmentStatus.RETURNED
        assignment.returned_date = today()
        db.session.flush()

        append_activity(
            action=ActivityAction.UPDATE,
            item_type=ItemType.CONSUMABLE,
            item_id=consumable.id,
            user_id=acting_user_id,
            notes=f"Consumable returned by {assignment.assignee} (qty {assignment.quantity})",
        )
        return LifecycleResult.success(assignment)

    return run_atomic(_op, action="consumable return")
