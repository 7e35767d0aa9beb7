from __future__ import annotations

import enum

from ..extensions import db


class UnitStatus(str, enum.Enum):
    AVAILABLE = "available"
    DEPLOYED = "deployed"
    PENDING = "pending"
    OVERDUE = "overdue"
    ARCHIVED = "archived"


class AssignmentStatus(str, enum.Enum):
    ASSIGNED = "assigned"
    RETURNED = "returned"


class ActivityAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    CHECKOUT = "checkout"
    CHECKIN = "checkin"


class ItemType(str, enum.Enum):
    UNIT = "unit"
    LICENSE = "license"
    CONSUMABLE = "consumable"
    ACCESSORY = "accessory"
    COMPONENT = "component"
    USER = "user"
    VM = "vm"


# Units that have a holder. Everything else must have holder_id NULL.
HELD_UNIT_STATUSES = frozenset({UnitStatus.DEPLOYED, UnitStatus.OVERDUE})


def enum_column(enum_cls: type[enum.Enum], **kwargs) -> db.Column:
    """
    Closed-set column stored as its string value (VARCHAR + CHECK, not a native enum).
    """
    return db.Column(
        db.Enum(
            enum_cls,
            native_enum=False,
            length=16,
            validate_strings=True,
            values_callable=lambda members: [m.value for m in members],
            name=f"{enum_cls.__name__.lower()}_enum",
        ),
        **kwargs,
    )
