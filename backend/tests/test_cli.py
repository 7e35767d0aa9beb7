from custody.models import Unit, UnitStatus
from custody.services import consumable_service, unit_service


def _run(app, *args):
    return app.test_cli_runner().invoke(args=list(args))


def test_units_checkout_and_checkin(app, db_session, unit, holder):
    result = _run(app, "units", "checkout", "A-001", "jdoe", "--due", "2025-01-01")
    assert result.exit_code == 0, result.output
    assert "PASS A-001 checked out to jdoe" in result.output

    db_session.expire_all()
    assert db_session.get(Unit, unit.id).status == UnitStatus.DEPLOYED

    result = _run(app, "units", "checkin", "A-001")
    assert "PASS A-001 checked in" in result.output

    result = _run(app, "units", "checkin", "A-001")
    assert "Nothing to check in" in result.output


def test_units_checkout_rejects_bad_date(app, db_session, unit, holder):
    result = _run(app, "units", "checkout", "A-001", "jdoe", "--due", "01/01/2025")
    assert result.exit_code != 0
    assert "--due must be YYYY-MM-DD" in result.output


def test_unknown_unit_is_reported(app, db_session, holder):
    result = _run(app, "units", "checkout", "NOPE", "jdoe")
    assert result.exit_code != 0
    assert "Unit 'NOPE' not found" in result.output


def test_units_verify_passes_on_consistent_data(app, db_session, unit, holder):
    unit_service.checkout_unit(unit.id, holder.id)
    result = _run(app, "units", "verify")
    assert result.exit_code == 0
    assert "PASS All units consistent" in result.output


def test_units_verify_flags_broken_custody(app, db_session, unit):
    db_session.get(Unit, unit.id).status = UnitStatus.DEPLOYED
    db_session.commit()

    result = _run(app, "units", "verify")

    assert result.exit_code != 0
    assert "requires a holder" in result.output


def test_consumable_quantity_arrives_as_text(app, db_session, consumable):
    result = _run(app, "consumables", "assign", str(consumable.id), "Front desk", "--quantity", "3")
    assert "PASS 3 of consumable" in result.output

    result = _run(app, "consumables", "assign", str(consumable.id), "Front desk", "--quantity", "3")
    assert "FAIL [capacity_exceeded]" in result.output

    result = _run(app, "consumables", "assign", str(consumable.id), "Front desk", "--quantity", "two")
    assert result.exit_code != 0

    assert len(consumable_service.list_assignments(consumable.id)) == 1


def test_stats_units(app, db_session, unit, holder):
    unit_service.checkout_unit(unit.id, holder.id)
    result = _run(app, "stats", "units")
    assert "checked_out  1" in result.output
    assert "total        1" in result.output


def test_activity_list_for_unit(app, db_session, unit, holder):
    unit_service.checkout_unit(unit.id, holder.id)
    result = _run(app, "activity", "list", "--unit", "A-001")
    lines = result.output.strip().splitlines()
    assert len(lines) == 2
    assert "checkout" in lines[-1]
