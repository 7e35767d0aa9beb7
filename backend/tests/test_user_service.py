import pytest

from custody.models import ActivityAction, ItemType, User
from custody.services import activity_service, unit_service, user_service
from custody.services.user_service import PasswordValidationError
from custody.validation import ConflictError, ValidationError


def _payload(username="mroe"):
    return {
        "username": username,
        "first_name": "Mary",
        "last_name": "Roe",
        "email": f"{username}@example.com",
    }


def test_create_user_hashes_password_and_sets_defaults(db_session):
    user = user_service.create_user(_payload(), "Password123!")

    assert user.password_hash != "Password123!"
    assert user_service.verify_password("Password123!", user.password_hash)
    assert not user_service.verify_password("wrong", user.password_hash)
    assert user_service.has_permission(user, "units", "view")
    assert not user_service.has_permission(user, "units", "edit")
    assert user_service.has_permission(user, "vms", "view")
    assert not user_service.has_permission(user, "vms", "add")

    row = activity_service.list_by_item(user.id, ItemType.USER)[-1]
    assert row.action == ActivityAction.CREATE


@pytest.mark.parametrize("password", ["short1!", "alllowercase1!", "NoDigitsHere!", "NoSpecial123"])
def test_weak_passwords_are_rejected(db_session, password):
    with pytest.raises(PasswordValidationError):
        user_service.create_user(_payload(), password)
    assert user_service.get_user_by_username("mroe") is None


def test_verify_password_with_malformed_hash():
    assert user_service.verify_password("Password123!", "not-a-bcrypt-hash") is False


def test_duplicate_username_is_a_conflict(db_session, holder, activity_count):
    before = activity_count()
    with pytest.raises(ConflictError):
        user_service.create_user(_payload("jdoe"), "Password123!")
    assert activity_count() == before


def test_user_holding_a_unit_cannot_be_deleted(db_session, unit, holder):
    unit_service.checkout_unit(unit.id, holder.id)

    with pytest.raises(ConflictError):
        user_service.delete_user(holder.id)

    assert db_session.get(User, holder.id) is not None


def test_user_referenced_by_activity_cannot_be_deleted(db_session, unit, holder):
    unit_service.checkout_unit(unit.id, holder.id)
    unit_service.checkin_unit(unit.id)

    with pytest.raises(ConflictError):
        user_service.delete_user(holder.id)


def test_unreferenced_user_can_be_deleted(db_session, make_user):
    user = make_user("temp")
    user_id = user.id

    assert user_service.delete_user(user_id) is True
    assert db_session.get(User, user_id) is None
    assert user_service.delete_user(user_id) is False


def test_users_cannot_delete_themselves(db_session, make_user):
    user = make_user("self")
    with pytest.raises(ConflictError):
        user_service.delete_user(user.id, acting_user_id=user.id)


def test_permissions_can_be_granted_and_revoked(db_session, make_user):
    user = make_user("clerk")

    user_service.set_permission(user.id, "licenses", "edit", True)
    db_session.refresh(user)
    assert user_service.has_permission(user, "licenses", "edit")

    user_service.set_permission(user.id, "licenses", "edit", False)
    db_session.refresh(user)
    assert not user_service.has_permission(user, "licenses", "edit")

    with pytest.raises(ValidationError):
        user_service.set_permission(user.id, "spaceships", "edit", True)


def test_admin_has_every_permission(db_session, make_user):
    admin = make_user("root", is_admin=True)
    assert user_service.has_permission(admin, "admin", "edit")
