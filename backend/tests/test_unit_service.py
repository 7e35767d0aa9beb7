from datetime import date

import pytest

from custody.models import Activity, ActivityAction, ItemType, UnitStatus
from custody.services import activity_service, unit_service
from custody.services.results import Failure
from custody.validation import ValidationError


def test_checkout_then_checkin_round_trip(db_session, unit, holder, activity_count):
    before = activity_count()

    result = unit_service.checkout_unit(unit.id, holder.id, date(2025, 1, 1))
    assert result.ok
    assert result.record.status == UnitStatus.DEPLOYED
    assert result.record.holder_id == holder.id
    assert result.record.expected_return_date == date(2025, 1, 1)
    assert result.record.checkout_date is not None

    result = unit_service.checkin_unit(unit.id)
    assert result.ok
    assert result.record.status == UnitStatus.AVAILABLE
    assert result.record.holder_id is None

    assert activity_count() == before + 2
    checkout_row, checkin_row = activity_service.list_by_item(unit.id, ItemType.UNIT)[-2:]
    assert checkout_row.action == ActivityAction.CHECKOUT
    assert checkout_row.user_id == holder.id
    assert checkin_row.action == ActivityAction.CHECKIN
    assert checkin_row.user_id == holder.id
    assert checkout_row.sequence < checkin_row.sequence


def test_checkin_clears_every_custody_field(db_session, unit, holder):
    unit_service.checkout_unit(unit.id, holder.id, date(2025, 1, 1))
    unit_service.update_unit(unit.id, {"external_id": "MDM-42"})

    result = unit_service.checkin_unit(unit.id)

    record = result.record
    assert record.checkout_date is None
    assert record.expected_return_date is None
    assert record.external_id is None
    assert unit_service.custody_violations(record) == []


def test_checkout_default_note_names_unit_and_holder(db_session, unit, holder):
    unit_service.checkout_unit(unit.id, holder.id)
    row = activity_service.list_by_user(holder.id)[-1]
    assert row.notes == "Unit Laptop 14 (A-001) checked out to Jane Doe"


def test_checkout_uses_caller_note(db_session, unit, holder):
    unit_service.checkout_unit(unit.id, holder.id, note="loaner for conference")
    assert activity_service.list_by_user(holder.id)[-1].notes == "loaner for conference"


def test_checkout_of_deployed_unit_is_rejected_without_writes(db_session, unit, holder, make_user, activity_count):
    other = make_user("asmith")
    unit_service.checkout_unit(unit.id, holder.id)
    before = activity_count()

    result = unit_service.checkout_unit(unit.id, other.id)

    assert not result.ok
    assert result.failure == Failure.INVALID_TRANSITION
    assert "deployed" in result.message
    db_session.refresh(unit)
    assert unit.holder_id == holder.id
    assert activity_count() == before


def test_checkout_unknown_unit_or_user(db_session, unit, holder):
    assert unit_service.checkout_unit(9999, holder.id).failure == Failure.NOT_FOUND
    assert unit_service.checkout_unit(unit.id, 9999).failure == Failure.NOT_FOUND
    db_session.refresh(unit)
    assert unit.status == UnitStatus.AVAILABLE


def test_checkout_rejects_text_return_date(db_session, unit, holder):
    with pytest.raises(ValidationError):
        unit_service.checkout_unit(unit.id, holder.id, "2025-01-01")


def test_checkin_of_available_unit_is_a_no_op(db_session, unit, activity_count):
    before = activity_count()

    result = unit_service.checkin_unit(unit.id)

    assert not result.ok
    assert result.failure == Failure.INVALID_TRANSITION
    assert activity_count() == before


def test_mark_overdue_flags_only_past_due_units(db_session, holder):
    late = unit_service.create_unit({"tag": "A-100", "name": "Late"})
    on_time = unit_service.create_unit({"tag": "A-101", "name": "On time"})
    no_date = unit_service.create_unit({"tag": "A-102", "name": "Open ended"})
    unit_service.checkout_unit(late.id, holder.id, date(2025, 1, 1))
    unit_service.checkout_unit(on_time.id, holder.id, date(2025, 3, 1))
    unit_service.checkout_unit(no_date.id, holder.id)

    flagged = unit_service.mark_overdue_units(as_of=date(2025, 2, 1))

    assert [u.tag for u in flagged] == ["A-100"]
    db_session.refresh(late)
    assert late.status == UnitStatus.OVERDUE
    assert late.holder_id == holder.id
    assert unit_service.custody_violations(late) == []

    row = activity_service.list_by_item(late.id, ItemType.UNIT)[-1]
    assert row.action == ActivityAction.UPDATE
    assert row.user_id is None


def test_overdue_unit_can_be_checked_in(db_session, unit, holder):
    unit_service.checkout_unit(unit.id, holder.id, date(2025, 1, 1))
    unit_service.mark_overdue_units(as_of=date(2025, 2, 1))

    result = unit_service.checkin_unit(unit.id)

    assert result.ok
    assert result.record.status == UnitStatus.AVAILABLE
    row = activity_service.list_by_item(unit.id, ItemType.UNIT)[-1]
    assert row.action == ActivityAction.CHECKIN
    assert row.user_id == holder.id


def test_archive_requires_available(db_session, unit, holder):
    unit_service.checkout_unit(unit.id, holder.id)
    assert unit_service.archive_unit(unit.id).failure == Failure.INVALID_TRANSITION

    unit_service.checkin_unit(unit.id)
    result = unit_service.archive_unit(unit.id)
    assert result.ok
    assert result.record.status == UnitStatus.ARCHIVED
    assert unit_service.checkout_unit(unit.id, holder.id).failure == Failure.INVALID_TRANSITION


def test_delete_held_unit_is_rejected(db_session, unit, holder):
    unit_service.checkout_unit(unit.id, holder.id)

    result = unit_service.delete_unit(unit.id)

    assert result.failure == Failure.INVALID_TRANSITION
    assert unit_service.get_unit_by_tag("A-001") is not None


def test_delete_available_unit_keeps_its_history(db_session, unit):
    unit_id = unit.id
    result = unit_service.delete_unit(unit_id)

    assert result.ok
    assert result.record == {"id": unit_id, "tag": "A-001"}
    assert unit_service.get_unit_by_tag("A-001") is None
    actions = [a.action for a in activity_service.list_by_item(unit_id, ItemType.UNIT)]
    assert actions == [ActivityAction.CREATE, ActivityAction.DELETE]


def test_update_cannot_touch_tag_or_custody_fields(db_session, unit, holder):
    with pytest.raises(ValidationError):
        unit_service.update_unit(unit.id, {"tag": "B-001"})
    with pytest.raises(ValidationError):
        unit_service.update_unit(unit.id, {"status": "deployed"})
    with pytest.raises(ValidationError):
        unit_service.update_unit(unit.id, {"holder_id": holder.id})

    updated = unit_service.update_unit(unit.id, {"location": "HQ", "warranty_months": "24"})
    assert updated.location == "HQ"
    assert updated.warranty_months == 24
    assert unit_service.update_unit(9999, {"location": "HQ"}) is None


def test_can_transition_table():
    assert unit_service.can_transition("checkout", UnitStatus.AVAILABLE)
    assert not unit_service.can_transition("checkout", UnitStatus.PENDING)
    assert unit_service.can_transition("checkin", UnitStatus.OVERDUE)
    assert not unit_service.can_transition("checkin", UnitStatus.ARCHIVED)
    with pytest.raises(ValueError):
        unit_service.can_transition("teleport", UnitStatus.AVAILABLE)


def test_every_transition_writes_exactly_one_activity(db_session, unit, holder, activity_count):
    steps = [
        lambda: unit_service.checkout_unit(unit.id, holder.id, date(2025, 1, 1)),
        lambda: unit_service.mark_overdue_units(as_of=date(2025, 6, 1)),
        lambda: unit_service.checkin_unit(unit.id),
        lambda: unit_service.archive_unit(unit.id),
    ]
    for step in steps:
        before = activity_count()
        step()
        assert activity_count() == before + 1
    assert db_session.query(Activity).filter_by(item_id=unit.id).count() == 5


def test_create_cannot_set_external_id(db_session, activity_count):
    before = activity_count()
    with pytest.raises(ValidationError, match="Field not allowed: external_id"):
        unit_service.create_unit({"tag": "X-1", "name": "x", "external_id": "MDM-2"})
    assert unit_service.get_unit_by_tag("X-1") is None
    assert activity_count() == before


def test_external_id_only_writable_while_held(db_session, unit, holder):
    with pytest.raises(ValidationError, match="only be set while"):
        unit_service.update_unit(unit.id, {"external_id": "MDM-1"})
    db_session.refresh(unit)
    assert unit.external_id is None
    assert unit_service.custody_violations(unit) == []

    # Clearing it is always allowed
    assert unit_service.update_unit(unit.id, {"external_id": None}).external_id is None

    unit_service.checkout_unit(unit.id, holder.id)
    updated = unit_service.update_unit(unit.id, {"external_id": "MDM-1"})
    assert updated.external_id == "MDM-1"
    assert unit_service.custody_violations(updated) == []


def test_checkout_checkin_restores_every_field(db_session, holder):
    unit = unit_service.create_unit({
        "tag": "RT-1",
        "name": "Round trip",
        "category": "laptop",
        "serial": "SN-99",
        "location": "HQ",
        "warranty_months": 36,
        "purchase_date": "2024-02-01",
        "purchase_cost_cents": 129900,
    })
    db_session.refresh(unit)
    before = unit.to_dict()

    unit_service.checkout_unit(unit.id, holder.id, date(2025, 1, 1))
    unit_service.update_unit(unit.id, {"external_id": "MDM-7"})
    after = unit_service.checkin_unit(unit.id).record.to_dict()

    before.pop("version_id")
    after.pop("version_id")
    assert after == before
