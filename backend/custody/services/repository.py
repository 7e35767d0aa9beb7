# Overview: Minimal per-entity repository over the SQLAlchemy session.

"""
Entity store access layer.

Every inventory record kind gets one Repository exposing get / list /
insert / update / delete. Untyped input (form text, CLI args) is normalized
here exactly once via validation.validate_payload, so lifecycle code only
ever sees ints, dates and enums.

Repositories never commit. They flush so ids are assigned and constraint
failures surface inside the caller's transaction (see concurrency.run_atomic).
IntegrityError is reported as ConflictError.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    User,
    Unit,
    License,
    LicenseAssignment,
    Consumable,
    ConsumableAssignment,
    Accessory,
    Component,
    VmInventory,
)
from ..validation import ConflictError, ModelValidationPolicy, validate_payload
from .concurrency import lock_for_update


PURCHASE_FIELDS = frozenset({
    "purchase_date",
    "purchase_cost_cents",
    "order_number",
    "manufacturer",
    "supplier",
})


class Repository:
    def __init__(
        self,
        model,
        create_policy: ModelValidationPolicy,
        update_policy: ModelValidationPolicy | None = None,
    ):
        self.model = model
        self.create_policy = create_policy
        self.update_policy = update_policy or create_policy

    def __repr__(self) -> str:
        return f"<Repository {self.model.__tablename__}>"

    def get(self, record_id: int):
        return db.session.get(self.model, record_id)

    def get_for_update(self, record_id: int):
        return lock_for_update(db.session.query(self.model).filter_by(id=record_id)).first()

    def first_by(self, **filters):
        return db.session.query(self.model).filter_by(**filters).first()

    def list(self, **filters) -> list:
        q = db.session.query(self.model)
        if filters:
            q = q.filter_by(**filters)
        return q.order_by(self.model.id.asc()).all()

    def insert(self, payload: dict, **system_fields):
        """
        Validate payload against the create policy and add the row.

        system_fields are set by services (status, hashes, parent ids) and
        bypass the client allowlist.
        """
        cleaned = validate_payload(
            model=self.model,
            payload=payload,
            policy=self.create_policy,
            partial=False,
        )
        record = self.model(**cleaned, **system_fields)
        db.session.add(record)
        self._flush()
        return record

    def update(self, record_id: int, payload: dict):
        """Patch writable fields. Returns None when the row does not exist."""
        record = self.get_for_update(record_id)
        if record is None:
            return None
        cleaned = validate_payload(
            model=self.model,
            payload=payload,
            policy=self.update_policy,
            partial=True,
        )
        for key, value in cleaned.items():
            setattr(record, key, value)
        self._flush()
        return record

    def delete(self, record_id: int) -> bool:
        record = self.get_for_update(record_id)
        if record is None:
            return False
        db.session.delete(record)
        self._flush()
        return True

    def _flush(self) -> None:
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise ConflictError(
                f"Constraint violation on {self.model.__tablename__}: {exc.orig}"
            ) from exc


users = Repository(
    User,
    ModelValidationPolicy(
        writable_fields=frozenset({
            "username", "first_name", "last_name", "email",
            "department", "is_admin", "permissions",
        }),
        required_on_create=frozenset({"username", "first_name", "last_name", "email"}),
    ),
)

_UNIT_FIELDS = frozenset({
    "name", "category", "serial", "location", "notes",
    "warranty_months", "invoice_number",
}) | PURCHASE_FIELDS

units = Repository(
    Unit,
    # New units are AVAILABLE, so no external_id yet
    ModelValidationPolicy(
        writable_fields=_UNIT_FIELDS | {"tag"},
        required_on_create=frozenset({"tag", "name"}),
        non_negative_fields=frozenset({"warranty_months"}),
    ),
    # tag is the immutable business key; external_id only while held (unit_service.update_unit)
    ModelValidationPolicy(
        writable_fields=_UNIT_FIELDS | {"external_id"},
        non_negative_fields=frozenset({"warranty_months"}),
    ),
)

licenses = Repository(
    License,
    ModelValidationPolicy(
        writable_fields=frozenset({
            "name", "product_key", "seats", "licensed_to", "license_email",
            "reassignable", "expiry_date", "notes",
        }) | PURCHASE_FIELDS,
        required_on_create=frozenset({"name"}),
        non_negative_fields=frozenset({"seats"}),
    ),
)

license_assignments = Repository(
    LicenseAssignment,
    ModelValidationPolicy(
        writable_fields=frozenset({"assignee", "serial", "notes"}),
        required_on_create=frozenset({"assignee"}),
    ),
)

consumables = Repository(
    Consumable,
    ModelValidationPolicy(
        writable_fields=frozenset({
            "name", "category", "item_no", "quantity", "min_quantity",
            "location", "notes",
        }) | PURCHASE_FIELDS,
        required_on_create=frozenset({"name"}),
        non_negative_fields=frozenset({"quantity", "min_quantity"}),
    ),
)

consumable_assignments = Repository(
    ConsumableAssignment,
    ModelValidationPolicy(
        writable_fields=frozenset({"assignee", "serial", "external_id", "notes"}),
        required_on_create=frozenset({"assignee"}),
    ),
)

accessories = Repository(
    Accessory,
    ModelValidationPolicy(
        writable_fields=frozenset({
            "name", "accessory_type", "serial", "location", "notes",
            "quantity", "min_quantity",
        }) | PURCHASE_FIELDS,
        required_on_create=frozenset({"name"}),
        non_negative_fields=frozenset({"quantity", "min_quantity"}),
    ),
)

components = Repository(
    Component,
    ModelValidationPolicy(
        writable_fields=frozenset({
            "name", "category", "serial", "location", "notes",
            "quantity", "min_quantity",
        }) | PURCHASE_FIELDS,
        required_on_create=frozenset({"name"}),
        non_negative_fields=frozenset({"quantity", "min_quantity"}),
    ),
)

vms = Repository(
    VmInventory,
    ModelValidationPolicy(
        writable_fields=frozenset({
            "vm_name", "host", "ip_address", "guest_os", "power_state",
            "cpu_count", "memory_mb", "disk_gb", "notes",
        }),
        required_on_create=frozenset({"vm_name"}),
        non_negative_fields=frozenset({"cpu_count", "memory_mb", "disk_gb"}),
    ),
)
