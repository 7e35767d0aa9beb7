from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date
from .enums import UnitStatus, enum_column
from .mixins import PurchaseInfoMixin


class Unit(PurchaseInfoMixin, db.Model):
    """
    A trackable piece of equipment.

    CUSTODY INVARIANT:
    - holder_id is set if and only if status is DEPLOYED or OVERDUE
    - AVAILABLE implies holder_id, checkout_date, expected_return_date and
      external_id are all NULL

    status/holder fields are only written by unit_service transitions, never
    through the generic update path. version_id guards concurrent transitions.
    """
    __tablename__ = "units"
    __table_args__ = (
        db.Index("ix_units_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Business key. Unique and immutable after creation.
    tag = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=True)
    serial = db.Column(db.String(128), nullable=True)
    location = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    warranty_months = db.Column(db.Integer, nullable=True)
    invoice_number = db.Column(db.String(64), nullable=True)

    status = enum_column(UnitStatus, nullable=False, default=UnitStatus.AVAILABLE)
    holder_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    checkout_date = db.Column(db.Date, nullable=True)
    expected_return_date = db.Column(db.Date, nullable=True)

    # Free-text external management id (e.g. MDM enrollment); cleared on check-in
    external_id = db.Column(db.String(128), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    holder = db.relationship("User", backref=db.backref("held_units", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Unit id={self.id} tag={self.tag!r} status={self.status.value}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tag": self.tag,
            "name": self.name,
            "category": self.category,
            "serial": self.serial,
            "location": self.location,
            "notes": self.notes,
            "warranty_months": self.warranty_months,
            "invoice_number": self.invoice_number,
            "status": self.status.value,
            "holder_id": self.holder_id,
            "checkout_date": to_iso_date(self.checkout_date),
            "expected_return_date": to_iso_date(self.expected_return_date),
            "external_id": self.external_id,
            "version_id": self.version_id,
            **self.purchase_dict(),
        }
