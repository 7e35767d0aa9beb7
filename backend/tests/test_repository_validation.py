from datetime import date

import pytest

from custody.models import Unit
from custody.services import repository, unit_service
from custody.validation import (
    ConflictError,
    ValidationError,
    coerce_int,
    coerce_quantity,
)


def test_text_input_is_normalized_once_at_the_store(db_session):
    consumable = repository.consumables.insert(
        {"name": "  Paper  ", "quantity": "12", "min_quantity": " 3 ", "purchase_date": "2024-05-01"}
    )

    assert consumable.name == "Paper"
    assert consumable.quantity == 12
    assert consumable.min_quantity == 3
    assert consumable.purchase_date == date(2024, 5, 1)


@pytest.mark.parametrize("raw", ["1e3", "12.5", "", "abc", 1.0, True, None])
def test_coerce_int_rejects_non_integers(raw):
    with pytest.raises(ValidationError):
        coerce_int(raw, "quantity")


def test_coerce_quantity():
    assert coerce_quantity("4") == 4
    with pytest.raises(ValidationError):
        coerce_quantity("0")
    with pytest.raises(ValidationError):
        coerce_quantity(-2)


def test_missing_and_unknown_fields(db_session):
    with pytest.raises(ValidationError, match="Missing required fields: tag"):
        repository.units.insert({"name": "No tag"})
    with pytest.raises(ValidationError, match="Field not allowed: holder_id"):
        repository.units.insert({"tag": "X-1", "name": "x", "holder_id": 1})


def test_blank_and_overlong_values(db_session):
    with pytest.raises(ValidationError, match="cannot be blank"):
        repository.units.insert({"tag": "   ", "name": "x"})
    with pytest.raises(ValidationError, match="max length"):
        repository.units.insert({"tag": "T" * 65, "name": "x"})


def test_purchase_cost_bounds(db_session):
    with pytest.raises(ValidationError):
        repository.licenses.insert({"name": "x", "purchase_cost_cents": -1})
    with pytest.raises(ValidationError):
        repository.licenses.insert({"name": "x", "purchase_cost_cents": 1_000_000_000})


def test_duplicate_tag_leaves_no_partial_writes(db_session, unit, activity_count):
    before = activity_count()

    with pytest.raises(ConflictError):
        unit_service.create_unit({"tag": "A-001", "name": "Second laptop"})

    assert activity_count() == before
    assert db_session.query(Unit).count() == 1


def test_update_and_delete_missing_rows(db_session):
    assert repository.units.update(4242, {"name": "x"}) is None
    assert repository.units.delete(4242) is False


def test_list_filters(db_session):
    unit_service.create_unit({"tag": "L-1", "name": "a", "category": "laptop"})
    unit_service.create_unit({"tag": "M-1", "name": "b", "category": "monitor"})

    assert [u.tag for u in repository.units.list(category="laptop")] == ["L-1"]
    assert len(repository.units.list()) == 2
