from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date
from .enums import AssignmentStatus, enum_column
from .mixins import PurchaseInfoMixin


class License(PurchaseInfoMixin, db.Model):
    """
    A software license with a fixed number of seats.

    SEAT INVARIANT: ASSIGNED rows in license_assignments <= seats.
    Enforced by license_service.assign_seat (ENFORCE_LICENSE_SEAT_LIMIT),
    not by the schema.
    """
    __tablename__ = "licenses"
    __table_args__ = (
        db.CheckConstraint("seats >= 0", name="ck_licenses_seats_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    product_key = db.Column(db.String(255), nullable=True)
    seats = db.Column(db.Integer, nullable=False, default=1)
    licensed_to = db.Column(db.String(255), nullable=True)
    license_email = db.Column(db.String(255), nullable=True)
    reassignable = db.Column(db.Boolean, nullable=False, default=True)
    expiry_date = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<License id={self.id} name={self.name!r} seats={self.seats}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "product_key": self.product_key,
            "seats": self.seats,
            "licensed_to": self.licensed_to,
            "license_email": self.license_email,
            "reassignable": self.reassignable,
            "expiry_date": to_iso_date(self.expiry_date),
            "notes": self.notes,
            "version_id": self.version_id,
            **self.purchase_dict(),
        }


class LicenseAssignment(db.Model):
    """
    One seat of a license granted to an assignee.

    Rows are written once by assign_seat; the only later change is
    ASSIGNED -> RETURNED. They are removed only by the license delete cascade.
    """
    __tablename__ = "license_assignments"
    __table_args__ = (
        db.Index("ix_license_assignments_license_status", "license_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    license_id = db.Column(db.Integer, db.ForeignKey("licenses.id"), nullable=False, index=True)

    # Free text; not necessarily a User
    assignee = db.Column(db.String(255), nullable=False)
    serial = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    assigned_date = db.Column(db.Date, nullable=False)
    returned_date = db.Column(db.Date, nullable=True)
    status = enum_column(AssignmentStatus, nullable=False, default=AssignmentStatus.ASSIGNED)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    license = db.relationship("License")

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "license_id": self.license_id,
            "assignee": self.assignee,
            "serial": self.serial,
            "notes": self.notes,
            "assigned_date": to_iso_date(self.assigned_date),
            "returned_date": to_iso_date(self.returned_date),
            "status": self.status.value,
        }
