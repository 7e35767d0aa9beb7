from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import to_utc_z
from .enums import ActivityAction, ItemType, enum_column


class AppendOnlyViolation(RuntimeError):
    """Raised when a flush would modify or remove a stored activity row."""


class Activity(db.Model):
    """
    Audit ledger row. Append-only.

    - Written in the same DB transaction as the change it records.
    - user_id is NULL for system-initiated actions.
    - timestamp is wall-clock time for display; sequence is the insertion
      order (allocated from ledger_sequences) and breaks timestamp ties.
    """
    __tablename__ = "activities"
    __table_args__ = (
        db.Index("ix_activities_item", "item_type", "item_id"),
        db.Index("ix_activities_timestamp_sequence", "timestamp", "sequence"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sequence = db.Column(db.Integer, nullable=False, unique=True)

    action = enum_column(ActivityAction, nullable=False, index=True)
    item_type = enum_column(ItemType, nullable=False)
    item_id = db.Column(db.Integer, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    notes = db.Column(db.Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Activity seq={self.sequence} {self.action.value} "
            f"{self.item_type.value}:{self.item_id} user={self.user_id}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sequence": self.sequence,
            "action": self.action.value,
            "item_type": self.item_type.value,
            "item_id": self.item_id,
            "user_id": self.user_id,
            "timestamp": to_utc_z(self.timestamp),
            "notes": self.notes,
        }


@event.listens_for(Activity, "before_update")
def _reject_activity_update(mapper, connection, target):
    raise AppendOnlyViolation(f"Activity {target.id} is append-only and cannot be updated")


@event.listens_for(Activity, "before_delete")
def _reject_activity_delete(mapper, connection, target):
    raise AppendOnlyViolation(f"Activity {target.id} is append-only and cannot be deleted")


class LedgerSequence(db.Model):
    """
    Named monotonic counters. "activities" allocates Activity.sequence.
    """
    __tablename__ = "ledger_sequences"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(32), nullable=False, unique=True)
    next_value = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "next_value": self.next_value,
            "updated_at": to_utc_z(self.updated_at),
        }
