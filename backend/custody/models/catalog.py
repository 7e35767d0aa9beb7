from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .mixins import PurchaseInfoMixin


class Accessory(PurchaseInfoMixin, db.Model):
    __tablename__ = "accessories"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_accessories_quantity_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    accessory_type = db.Column(db.String(64), nullable=True)
    serial = db.Column(db.String(128), nullable=True)
    location = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    min_quantity = db.Column(db.Integer, nullable=False, default=1)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "accessory_type": self.accessory_type,
            "serial": self.serial,
            "location": self.location,
            "notes": self.notes,
            "quantity": self.quantity,
            "min_quantity": self.min_quantity,
            **self.purchase_dict(),
        }


class Component(PurchaseInfoMixin, db.Model):
    __tablename__ = "components"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_components_quantity_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=True)
    serial = db.Column(db.String(128), nullable=True)
    location = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    min_quantity = db.Column(db.Integer, nullable=False, default=1)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "serial": self.serial,
            "location": self.location,
            "notes": self.notes,
            "quantity": self.quantity,
            "min_quantity": self.min_quantity,
            **self.purchase_dict(),
        }


class VmInventory(db.Model):
    """
    Virtual machine record. Tracked for inventory only; nobody checks a VM
    out, so there is no custody state or assignment table.
    """
    __tablename__ = "vm_inventory"
    __table_args__ = (
        db.CheckConstraint("cpu_count IS NULL OR cpu_count >= 0", name="ck_vm_inventory_cpu_nonnegative"),
        db.CheckConstraint("memory_mb IS NULL OR memory_mb >= 0", name="ck_vm_inventory_memory_nonnegative"),
        db.CheckConstraint("disk_gb IS NULL OR disk_gb >= 0", name="ck_vm_inventory_disk_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    vm_name = db.Column(db.String(255), nullable=False)
    host = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    guest_os = db.Column(db.String(128), nullable=True)
    power_state = db.Column(db.String(32), nullable=True)
    cpu_count = db.Column(db.Integer, nullable=True)
    memory_mb = db.Column(db.Integer, nullable=True)
    disk_gb = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def name(self) -> str:
        return self.vm_name

    def __repr__(self) -> str:
        return f"<VmInventory id={self.id} vm_name={self.vm_name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "vm_name": self.vm_name,
            "host": self.host,
            "ip_address": self.ip_address,
            "guest_os": self.guest_os,
            "power_state": self.power_state,
            "cpu_count": self.cpu_count,
            "memory_mb": self.memory_mb,
            "disk_gb": self.disk_gb,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
