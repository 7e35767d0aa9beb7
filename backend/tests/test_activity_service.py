from datetime import datetime

import pytest

from custody.extensions import db
from custody.models import Activity, ActivityAction, AppendOnlyViolation, ItemType, LedgerSequence
from custody.services import activity_service


def _append(**overrides):
    fields = {
        "action": ActivityAction.UPDATE,
        "item_type": ItemType.UNIT,
        "item_id": 1,
    }
    fields.update(overrides)
    activity = activity_service.append_activity(**fields)
    db.session.commit()
    return activity


def test_sequence_is_strictly_increasing(db_session):
    seqs = [_append(item_id=i).sequence for i in range(5)]
    assert seqs == sorted(seqs)
    assert len(set(seqs)) == 5
    assert db_session.query(LedgerSequence).filter_by(name="activities").one().next_value == seqs[-1] + 1


def test_append_accepts_plain_strings(db_session):
    row = _append(action="checkout", item_type="license", item_id=3)
    assert row.action == ActivityAction.CHECKOUT
    assert row.item_type == ItemType.LICENSE


def test_append_rejects_unknown_action(db_session):
    with pytest.raises(ValueError):
        activity_service.append_activity(action="teleport", item_type=ItemType.UNIT, item_id=1)


def test_stored_rows_cannot_be_updated(db_session):
    row = _append()
    row.notes = "rewritten"
    with pytest.raises(AppendOnlyViolation):
        db_session.flush()
    db_session.rollback()
    assert db_session.get(Activity, row.id).notes is None


def test_stored_rows_cannot_be_deleted(db_session):
    row = _append()
    db_session.delete(row)
    with pytest.raises(AppendOnlyViolation):
        db_session.flush()
    db_session.rollback()
    assert db_session.get(Activity, row.id) is not None


def test_reads_order_by_timestamp_then_sequence(db_session):
    later = _append(item_id=1, timestamp=datetime(2025, 1, 2, 9, 0))
    tie_a = _append(item_id=2, timestamp=datetime(2025, 1, 1, 9, 0))
    tie_b = _append(item_id=3, timestamp=datetime(2025, 1, 1, 9, 0))

    ids = [a.id for a in activity_service.list_activities()]

    assert ids == [tie_a.id, tie_b.id, later.id]
    assert [a.id for a in activity_service.list_activities(limit=1)] == [tie_a.id]


def test_filters_by_user_and_item(db_session, holder, make_user):
    other = make_user("asmith")
    mine = _append(item_id=7, user_id=holder.id)
    _append(item_id=7, user_id=other.id)
    license_row = _append(item_id=7, item_type=ItemType.LICENSE, user_id=holder.id)

    assert [a.id for a in activity_service.list_by_user(holder.id)] == [mine.id, license_row.id]
    assert len(activity_service.list_by_item(7)) == 3
    assert len(activity_service.list_by_item(7, ItemType.UNIT)) == 2
    assert [a.id for a in activity_service.list_by_item(7, "license")] == [license_row.id]


def test_to_dict_serializes_enums_and_timestamp(db_session):
    row = _append(timestamp=datetime(2025, 1, 1, 12, 30), notes="moved")
    d = row.to_dict()
    assert d["action"] == "update"
    assert d["item_type"] == "unit"
    assert d["timestamp"] == "2025-01-01T12:30:00Z"
    assert d["notes"] == "moved"
