from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date
from .enums import AssignmentStatus, enum_column
from .mixins import PurchaseInfoMixin


class Consumable(PurchaseInfoMixin, db.Model):
    """
    Bulk stock counted by quantity on hand.

    STOCK INVARIANT: quantity never goes below zero. assign_stock debits,
    return_stock credits back exactly what its assignment debited.
    """
    __tablename__ = "consumables"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_consumables_quantity_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=True)
    item_no = db.Column(db.String(64), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    # Informational only; see stats_service.low_stock_consumables
    min_quantity = db.Column(db.Integer, nullable=False, default=1)

    location = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Consumable id={self.id} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "item_no": self.item_no,
            "quantity": self.quantity,
            "min_quantity": self.min_quantity,
            "location": self.location,
            "notes": self.notes,
            "version_id": self.version_id,
            **self.purchase_dict(),
        }


class ConsumableAssignment(db.Model):
    """
    Quantity of a consumable handed to an assignee.

    quantity is carried on the row so a return credits back exactly what
    was debited, whatever else happened to the stock in between.
    """
    __tablename__ = "consumable_assignments"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_consumable_assignments_quantity_positive"),
        db.Index("ix_consumable_assignments_consumable_status", "consumable_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    consumable_id = db.Column(db.Integer, db.ForeignKey("consumables.id"), nullable=False, index=True)

    assignee = db.Column(db.String(255), nullable=False)
    serial = db.Column(db.String(128), nullable=True)
    external_id = db.Column(db.String(128), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    notes = db.Column(db.Text, nullable=True)

    assigned_date = db.Column(db.Date, nullable=False)
    returned_date = db.Column(db.Date, nullable=True)
    status = enum_column(AssignmentStatus, nullable=False, default=AssignmentStatus.ASSIGNED)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    consumable = db.relationship("Consumable")

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "consumable_id": self.consumable_id,
            "assignee": self.assignee,
            "serial": self.serial,
            "external_id": self.external_id,
            "quantity": self.quantity,
            "notes": self.notes,
            "assigned_date": to_iso_date(self.assigned_date),
            "returned_date": to_iso_date(self.returned_date),
            "status": self.status.value,
        }
