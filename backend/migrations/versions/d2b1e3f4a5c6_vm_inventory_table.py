"""Add vm_inventory table

Revision ID: d2b1e3f4a5c6
Revises: c1a0d2e3f4a5
Create Date: 2026-10-19 14:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "d2b1e3f4a5c6"
down_revision = "c1a0d2e3f4a5"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "vm_inventory",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("vm_name", sa.String(length=255), nullable=False),
        sa.Column("host", sa.String(length=255), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("guest_os", sa.String(length=128), nullable=True),
        sa.Column("power_state", sa.String(length=32), nullable=True),
        sa.Column("cpu_count", sa.Integer(), nullable=True),
        sa.Column("memory_mb", sa.Integer(), nullable=True),
        sa.Column("disk_gb", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.CheckConstraint("cpu_count IS NULL OR cpu_count >= 0", name="ck_vm_inventory_cpu_nonnegative"),
        sa.CheckConstraint("memory_mb IS NULL OR memory_mb >= 0", name="ck_vm_inventory_memory_nonnegative"),
        sa.CheckConstraint("disk_gb IS NULL OR disk_gb >= 0", name="ck_vm_inventory_disk_nonnegative"),
        sqlite_autoincrement=True,
    )


def downgrade():
    op.drop_table("vm_inventory")
