"""initial schema: users, equipment, withdrawals, audit log

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("partition", sa.String(length=64), nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.Enum("admin", "engineer", name="userrole"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("partition", "username", name="uq_users_partition_username"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_partition"), "users", ["partition"], unique=False)

    op.create_table(
        "equipment",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("partition", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "category",
            sa.Enum(
                "power-tools",
                "hand-tools",
                "safety-equipment",
                "materials",
                "machinery",
                "electronic",
                "other",
                name="equipmentcategory",
            ),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "unit",
            sa.Enum("pieces", "packets", "meters", "kilograms", "liters", "boxes", "sets", name="equipmentunit"),
            nullable=False,
        ),
        sa.Column("location", sa.String(length=255), nullable=False, server_default=""),
        sa.Column(
            "condition",
            sa.Enum("new", "good", "fair", "needs_repair", name="equipmentcondition"),
            nullable=False,
        ),
        sa.Column("serial_number", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("partition", "name", name="uq_equipment_partition_name"),
        sa.CheckConstraint("quantity >= 0", name="ck_equipment_quantity_nonneg"),
    )
    op.create_index("idx_equipment_partition_created", "equipment", ["partition", "created_at"], unique=False)

    op.create_table(
        "withdrawals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("partition", sa.String(length=64), nullable=False),
        sa.Column("withdrawal_date", sa.Date(), nullable=False),
        sa.Column("engineer_name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_withdrawals_partition_date", "withdrawals", ["partition", "withdrawal_date"], unique=False)
    op.create_index(op.f("ix_withdrawals_created_at"), "withdrawals", ["created_at"], unique=False)

    op.create_table(
        "withdrawal_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("withdrawal_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("equipment_id", sa.Integer(), nullable=False),
        sa.Column("equipment_name", sa.String(length=255), nullable=False),
        sa.Column("quantity_withdrawn", sa.Integer(), nullable=False),
        sa.Column("unit", sa.String(length=32), nullable=False),
        sa.ForeignKeyConstraint(["withdrawal_id"], ["withdrawals.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity_withdrawn > 0", name="ck_withdrawal_line_qty_positive"),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("partition", sa.String(length=64), nullable=False),
        sa.Column("username", sa.String(length=50), nullable=True),
        sa.Column("action", sa.String(length=120), nullable=False),
        sa.Column("entity_type", sa.String(length=120), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("payload_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_log_partition"), "audit_log", ["partition"], unique=False)
    op.create_index(op.f("ix_audit_log_created_at"), "audit_log", ["created_at"], unique=False)


def downgrade():
    op.drop_table("audit_log")
    op.drop_table("withdrawal_lines")
    op.drop_index("idx_withdrawals_partition_date", table_name="withdrawals")
    op.drop_table("withdrawals")
    op.drop_table("equipment")
    op.drop_table("users")
    sa.Enum(name="equipmentcondition").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="equipmentunit").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="equipmentcategory").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=True)
