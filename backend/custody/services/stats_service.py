# Overview: Read-only summaries over the entity store.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import AssignmentStatus, Consumable, License, LicenseAssignment, Unit, UnitStatus


# Every status maps to exactly one bucket; "total" is their sum.
UNIT_STAT_KEYS = {
    UnitStatus.DEPLOYED: "checked_out",
    UnitStatus.AVAILABLE: "available",
    UnitStatus.PENDING: "pending",
    UnitStatus.OVERDUE: "overdue",
    UnitStatus.ARCHIVED: "archived",
}

if set(UNIT_STAT_KEYS) != set(UnitStatus):
    raise RuntimeError("UNIT_STAT_KEYS must cover every UnitStatus exactly once")


def unit_stats() -> dict:
    """
    Unit counts partitioned by status.

    Returns:
        {"total", "checked_out", "available", "pending", "overdue", "archived"}
    """
    rows = (
        db.session.query(Unit.status, func.count(Unit.id))
        .group_by(Unit.status)
        .all()
    )
    counts = {key: 0 for key in UNIT_STAT_KEYS.values()}
    for status, n in rows:
        counts[UNIT_STAT_KEYS[UnitStatus(status)]] += n
    return {"total": sum(counts.values()), **counts}


def license_seat_stats() -> list[dict]:
    in_use = (
        db.session.query(
            LicenseAssignment.license_id.label("license_id"),
            func.count(LicenseAssignment.id).label("in_use"),
        )
        .filter(LicenseAssignment.status == AssignmentStatus.ASSIGNED)
        .group_by(LicenseAssignment.license_id)
        .subquery()
    )
    rows = (
        db.session.query(License, func.coalesce(in_use.c.in_use, 0))
        .outerjoin(in_use, in_use.c.license_id == License.id)
        .order_by(License.name.asc(), License.id.asc())
        .all()
    )
    return [
        {
            "license_id": lic.id,
            "name": lic.name,
            "seats": lic.seats,
            "in_use": used,
            "available": lic.seats - used,
        }
        for lic, used in rows
    ]


def low_stock_consumables() -> list[Consumable]:
    """Consumables whose on-hand quantity has dropped below min_quantity."""
    return (
        db.session.query(Consumable)
        .filter(Consumable.quantity < Consumable.min_quantity)
        .order_by(Consumable.name.asc(), Consumable.id.asc())
        .all()
    )
