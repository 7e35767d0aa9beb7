# Overview: Threaded races against a file-backed database.

"""
Concurrency tests for custody transitions.

Each worker runs in its own app context (own session and connection), so
the version_id check and retry path are exercised for real.
"""
import os
import tempfile
import threading
import unittest

from custody import create_app
from custody.extensions import db
from custody.models import AssignmentStatus, Consumable, LicenseAssignment, Unit, UnitStatus, User
from custody.services import consumable_service, license_service, unit_service
from custody.services.results import Failure


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "DB_RETRY_ATTEMPTS": 5,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            self.user_ids = []
            for i in range(2):
                user = User(
                    username=f"racer{i}",
                    first_name="Racer",
                    last_name=str(i),
                    email=f"racer{i}@example.com",
                    password_hash="dummy",
                )
                db.session.add(user)
                db.session.commit()
                self.user_ids.append(user.id)

            self.unit_id = unit_service.create_unit({"tag": "RACE-1", "name": "Contested laptop"}).id
            self.license_id = license_service.create_license({"name": "Single seat", "seats": 1}).id
            self.consumable_id = consumable_service.create_consumable({"name": "Batteries", "quantity": 4}).id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _race(self, calls):
        """Run each call in its own thread, released together; return results."""
        results = []
        errors = []
        lock = threading.Lock()
        barrier = threading.Barrier(len(calls))

        def worker(call):
            with self.app.app_context():
                try:
                    barrier.wait()
                    result = call()
                    with lock:
                        results.append(result)
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker, args=(c,)) for c in calls]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertFalse(errors)
        return results

    def test_concurrent_checkout_has_one_winner(self):
        results = self._race([
            lambda uid=uid: unit_service.checkout_unit(self.unit_id, uid)
            for uid in self.user_ids
        ])

        winners = [r for r in results if r.ok]
        losers = [r for r in results if not r.ok]
        self.assertEqual(len(winners), 1)
        self.assertEqual(len(losers), 1)
        self.assertEqual(losers[0].failure, Failure.INVALID_TRANSITION)

        with self.app.app_context():
            unit = db.session.get(Unit, self.unit_id)
            self.assertEqual(unit.status, UnitStatus.DEPLOYED)
            self.assertIn(unit.holder_id, self.user_ids)

    def test_last_seat_is_granted_once(self):
        results = self._race([
            lambda i=i: license_service.assign_seat(self.license_id, f"user{i}")
            for i in range(4)
        ])

        self.assertEqual(sum(1 for r in results if r.ok), 1)
        self.assertTrue(all(r.failure == Failure.CAPACITY_EXCEEDED for r in results if not r.ok))

        with self.app.app_context():
            active = (
                db.session.query(LicenseAssignment)
                .filter_by(license_id=self.license_id, status=AssignmentStatus.ASSIGNED)
                .count()
            )
            self.assertEqual(active, 1)

    def test_stock_never_oversold(self):
        results = self._race([
            lambda i=i: consumable_service.assign_stock(self.consumable_id, f"desk{i}", 3)
            for i in range(3)
        ])

        self.assertEqual(sum(1 for r in results if r.ok), 1)

        with self.app.app_context():
            consumable = db.session.get(Consumable, self.consumable_id)
            self.assertEqual(consumable.quantity, 1)


if __name__ == "__main__":
    unittest.main()
