"""Initial custody schema: users, units, licenses, consumables, catalog, activity ledger

Revision ID: c1a0d2e3f4a5
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "c1a0d2e3f4a5"
down_revision = None
branch_labels = None
depends_on = None


def _purchase_columns():
    return [
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("purchase_cost_cents", sa.Integer(), nullable=True),
        sa.Column("order_number", sa.String(length=64), nullable=True),
        sa.Column("manufacturer", sa.String(length=128), nullable=True),
        sa.Column("supplier", sa.String(length=128), nullable=True),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=80), nullable=False),
        sa.Column("last_name", sa.String(length=80), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("department", sa.String(length=128), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tag", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("serial", sa.String(length=128), nullable=True),
        sa.Column("location", sa.String(length=128), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("warranty_months", sa.Integer(), nullable=True),
        sa.Column("invoice_number", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="available"),
        sa.Column("holder_id", sa.Integer(), nullable=True),
        sa.Column("checkout_date", sa.Date(), nullable=True),
        sa.Column("expected_return_date", sa.Date(), nullable=True),
        sa.Column("external_id", sa.String(length=128), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        *_purchase_columns(),
        sa.ForeignKeyConstraint(["holder_id"], ["users.id"]),
        sa.UniqueConstraint("tag", name="uq_units_tag"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_units_status", "units", ["status"], unique=False)
    op.create_index("ix_units_holder_id", "units", ["holder_id"], unique=False)

    op.create_table(
        "licenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("product_key", sa.String(length=255), nullable=True),
        sa.Column("seats", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("licensed_to", sa.String(length=255), nullable=True),
        sa.Column("license_email", sa.String(length=255), nullable=True),
        sa.Column("reassignable", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        *_purchase_columns(),
        sa.CheckConstraint("seats >= 0", name="ck_licenses_seats_nonnegative"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "license_assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("license_id", sa.Integer(), nullable=False),
        sa.Column("assignee", sa.String(length=255), nullable=False),
        sa.Column("serial", sa.String(length=128), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("assigned_date", sa.Date(), nullable=False),
        sa.Column("returned_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="assigned"),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.ForeignKeyConstraint(["license_id"], ["licenses.id"]),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_license_assignments_license_id", "license_assignments", ["license_id"], unique=False)
    op.create_index(
        "ix_license_assignments_license_status",
        "license_assignments",
        ["license_id", "status"],
        unique=False,
    )

    op.create_table(
        "consumables",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("item_no", sa.String(length=64), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("min_quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("location", sa.String(length=128), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        *_purchase_columns(),
        sa.CheckConstraint("quantity >= 0", name="ck_consumables_quantity_nonnegative"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "consumable_assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("consumable_id", sa.Integer(), nullable=False),
        sa.Column("assignee", sa.String(length=255), nullable=False),
        sa.Column("serial", sa.String(length=128), nullable=True),
        sa.Column("external_id", sa.String(length=128), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("assigned_date", sa.Date(), nullable=False),
        sa.Column("returned_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="assigned"),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.ForeignKeyConstraint(["consumable_id"], ["consumables.id"]),
        sa.CheckConstraint("quantity > 0", name="ck_consumable_assignments_quantity_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_consumable_assignments_consumable_id", "consumable_assignments", ["consumable_id"], unique=False)
    op.create_index(
        "ix_consumable_assignments_consumable_status",
        "consumable_assignments",
        ["consumable_id", "status"],
        unique=False,
    )

    op.create_table(
        "accessories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("accessory_type", sa.String(length=64), nullable=True),
        sa.Column("serial", sa.String(length=128), nullable=True),
        sa.Column("location", sa.String(length=128), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("min_quantity", sa.Integer(), nullable=False, server_default="1"),
        *_purchase_columns(),
        sa.CheckConstraint("quantity >= 0", name="ck_accessories_quantity_nonnegative"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "components",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("serial", sa.String(length=128), nullable=True),
        sa.Column("location", sa.String(length=128), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("min_quantity", sa.Integer(), nullable=False, server_default="1"),
        *_purchase_columns(),
        sa.CheckConstraint("quantity >= 0", name="ck_components_quantity_nonnegative"),
        sqlite_autoincrement=True,
    )

    # Activity ledger (append-only) and its counter
    op.create_table(
        "ledger_sequences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=32), nullable=False),
        sa.Column("next_value", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("name", name="uq_ledger_sequences_name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=16), nullable=False),
        sa.Column("item_type", sa.String(length=16), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.UniqueConstraint("sequence", name="uq_activities_sequence"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_activities_action", "activities", ["action"], unique=False)
    op.create_index("ix_activities_item_id", "activities", ["item_id"], unique=False)
    op.create_index("ix_activities_user_id", "activities", ["user_id"], unique=False)
    op.create_index("ix_activities_item", "activities", ["item_type", "item_id"], unique=False)
    op.create_index("ix_activities_timestamp_sequence", "activities", ["timestamp", "sequence"], unique=False)


def downgrade():
    op.drop_index("ix_activities_timestamp_sequence", table_name="activities")
    op.drop_index("ix_activities_item", table_name="activities")
    op.drop_index("ix_activities_user_id", table_name="activities")
    op.drop_index("ix_activities_item_id", table_name="activities")
    op.drop_index("ix_activities_action", table_name="activities")
    op.drop_table("activities")
    op.drop_table("ledger_sequences")

    op.drop_table("components")
    op.drop_table("accessories")

    op.drop_index("ix_consumable_assignments_consumable_status", table_name="consumable_assignments")
    op.drop_index("ix_consumable_assignments_consumable_id", table_name="consumable_assignments")
    op.drop_table("consumable_assignments")
    op.drop_table("consumables")

    op.drop_index("ix_license_assignments_license_status", table_name="license_assignments")
    op.drop_index("ix_license_assignments_license_id", table_name="license_assignments")
    op.drop_table("license_assignments")
    op.drop_table("licenses")

    op.drop_index("ix_units_holder_id", table_name="units")
    op.drop_index("ix_units_status", table_name="units")
    op.drop_table("units")

    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
