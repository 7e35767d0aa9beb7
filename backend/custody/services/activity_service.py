# Overview: Append-only activity ledger; written inside the caller's transaction.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Activity, ActivityAction, ItemType, LedgerSequence
from ..time_utils import utcnow
"""
Activity Ledger Invariants (authoritative)

- Append-only. This module has no update or delete operation, and the model
  rejects ORM updates/deletes of stored rows.
- Rows are written inside the same DB transaction as the change they record;
  this module flushes but never commits.
- timestamp is wall-clock time for display; sequence is insertion order.
- Reads are ordered by (timestamp, sequence) ascending.
"""

ACTIVITY_SEQUENCE = "activities"


def next_sequence_value(name: str = ACTIVITY_SEQUENCE) -> int:
    """
    Atomically allocate the next value of a named counter.

    The UPDATE takes the row's write lock, so concurrent allocators serialize
    and never hand out the same value.
    """
    stmt = (
        update(LedgerSequence)
        .where(LedgerSequence.name == name)
        .values(next_value=LedgerSequence.next_value + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(LedgerSequence.next_value)
            .filter_by(name=name)
            .scalar()
        )
        return current - 1

    seq = LedgerSequence(name=name, next_value=2)
    db.session.add(seq)
    try:
        with db.session.begin_nested():
            db.session.flush()
        return 1
    except IntegrityError:
        # Another writer created the counter first
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise
        current = (
            db.session.query(LedgerSequence.next_value)
            .filter_by(name=name)
            .scalar()
        )
        return current - 1


def append_activity(
    *,
    action: ActivityAction,
    item_type: ItemType,
    item_id: int,
    user_id: int | None = None,
    notes: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> Activity:
    """
    Append one activity row and return it with id, sequence and timestamp set.

    - No domain logic here.
    - No deletes/updates of existing rows.
    - timestamp defaults to server UTC now.
    """
    activity = Activity(
        sequence=next_sequence_value(),
        action=ActivityAction(action),
        item_type=ItemType(item_type),
        item_id=item_id,
        user_id=user_id,
        timestamp=timestamp or utcnow(),
        notes=notes,
    )
    db.session.add(activity)
    db.session.flush()  # ensures id is assigned without committing
    return activity


def _ordered(q):
    return q.order_by(Activity.timestamp.asc(), Activity.sequence.asc())


def list_activities(*, limit: int | None = None) -> list[Activity]:
    q = _ordered(db.session.query(Activity))
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def list_by_user(user_id: int) -> list[Activity]:
    return _ordered(db.session.query(Activity).filter(Activity.user_id == user_id)).all()


def list_by_item(item_id: int, item_type: ItemType | None = None) -> list[Activity]:
    """
    Activities for one item id.

    Ids are per table, so pass item_type to avoid mixing e.g. unit 3 with
    license 3.
    """
    q = db.session.query(Activity).filter(Activity.item_id == item_id)
    if item_type is not None:
        q = q.filter(Activity.item_type == ItemType(item_type))
    return _ordered(q).all()
