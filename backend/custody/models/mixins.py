from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date


class PurchaseInfoMixin:
    """Purchase metadata shared by every inventory record kind."""

    purchase_date = db.Column(db.Date, nullable=True)

    # Authoritative storage in cents (callers may only format for display)
    purchase_cost_cents = db.Column(db.Integer, nullable=True)

    order_number = db.Column(db.String(64), nullable=True)
    manufacturer = db.Column(db.String(128), nullable=True)
    supplier = db.Column(db.String(128), nullable=True)

    def purchase_dict(self) -> dict:
        return {
            "purchase_date": to_iso_date(self.purchase_date),
            "purchase_cost_cents": self.purchase_cost_cents,
            "order_number": self.order_number,
            "manufacturer": self.manufacturer,
            "supplier": self.supplier,
        }
