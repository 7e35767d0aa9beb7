"""
Pytest fixtures for custody backend tests.

Provides the in-memory application, a per-test clean database, and small
factories for users and inventory records.
"""

import pytest

from custody import create_app
from custody.extensions import db
from custody.models import Activity, User
from custody.services import consumable_service, license_service, unit_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DB_RETRY_ATTEMPTS': 3,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh data for each test (schema kept)."""
    # Core deletes bypass the ORM append-only guard on activities
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    app.config['ENFORCE_LICENSE_SEAT_LIMIT'] = True

    yield db.session

    db.session.rollback()
    db.session.remove()


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory for users. Hash is a placeholder; bcrypt is covered separately."""
    def _make(username, first_name="Test", last_name="User", **fields):
        user = User(
            username=username,
            first_name=first_name,
            last_name=last_name,
            email=f"{username}@example.com",
            password_hash="x",
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture(scope='function')
def holder(make_user):
    return make_user("jdoe", first_name="Jane", last_name="Doe")


@pytest.fixture(scope='function')
def unit(db_session):
    return unit_service.create_unit({"tag": "A-001", "name": "Laptop 14"})


@pytest.fixture(scope='function')
def license_(db_session):
    return license_service.create_license({"name": "Office Suite", "seats": 2})


@pytest.fixture(scope='function')
def consumable(db_session):
    return consumable_service.create_consumable({"name": "Toner", "quantity": 5, "min_quantity": 1})


@pytest.fixture(scope='function')
def activity_count(db_session):
    """Callable returning the current number of ledger rows."""
    return lambda: db_session.query(Activity).count()
