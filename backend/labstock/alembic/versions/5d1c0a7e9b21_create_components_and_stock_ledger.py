"""
Create components catalog and stock_ledger tables.

Revision ID: 5d1c0a7e9b21
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5d1c0a7e9b21"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


COMPONENT_CATEGORIES = (
    "RESISTORS",
    "CAPACITORS",
    "INDUCTORS",
    "DIODES",
    "TRANSISTORS",
    "INTEGRATED_CIRCUITS",
    "MICROCONTROLLERS",
    "SENSORS",
    "CONNECTORS",
    "SWITCHES_BUTTONS",
    "LEDS_DISPLAYS",
    "CABLES_WIRES",
    "MECHANICAL_PARTS",
    "MISC_SUPPLIES",
)


def upgrade() -> None:
    op.create_table(
        "components",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("component_name", sa.String(length=255), nullable=False),
        sa.Column("part_number", sa.String(length=128), nullable=False),
        sa.Column("manufacturer", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "category",
            sa.Enum(*COMPONENT_CATEGORIES, name="component_category_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column("location_bin", sa.String(length=64), nullable=True),
        sa.Column("datasheet_link", sa.String(length=512), nullable=True),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("low_stock_threshold", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("opening_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_inward_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_outward_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("current_quantity >= 0", name="ck_components_quantity_non_negative"),
        sa.CheckConstraint("opening_quantity >= 0", name="ck_components_opening_non_negative"),
        sa.CheckConstraint("low_stock_threshold >= 0", name="ck_components_threshold_non_negative"),
        sa.CheckConstraint("unit_price >= 0", name="ck_components_price_non_negative"),
    )
    op.create_index("ix_components_id", "components", ["id"])
    op.create_index("ix_components_component_name", "components", ["component_name"])
    op.create_index("ix_components_part_number", "components", ["part_number"])
    op.create_index("ix_components_category", "components", ["category"])
    op.create_index("ix_components_last_outward_date", "components", ["last_outward_date"])
    op.create_index("ix_components_category_name", "components", ["category", "component_name"])

    op.create_table(
        "stock_ledger",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "component_id",
            sa.String(length=36),
            sa.ForeignKey("components.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "direction",
            sa.Enum("INWARD", "OUTWARD", name="movement_direction_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("performed_by", sa.String(length=64), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_stock_ledger_quantity_positive"),
    )
    op.create_index("ix_stock_ledger_id", "stock_ledger", ["id"])
    op.create_index("ix_stock_ledger_component_id", "stock_ledger", ["component_id"])
    op.create_index("ix_stock_ledger_direction", "stock_ledger", ["direction"])
    op.create_index("ix_stock_ledger_component_time", "stock_ledger", ["component_id", "occurred_at"])
    op.create_index("ix_stock_ledger_direction_time", "stock_ledger", ["direction", "occurred_at"])


def downgrade() -> None:
    op.drop_index("ix_stock_ledger_direction_time", table_name="stock_ledger")
    op.drop_index("ix_stock_ledger_component_time", table_name="stock_ledger")
    op.drop_index("ix_stock_ledger_direction", table_name="stock_ledger")
    op.drop_index("ix_stock_ledger_component_id", table_name="stock_ledger")
    op.drop_index("ix_stock_ledger_id", table_name="stock_ledger")
    op.drop_table("stock_ledger")

    op.drop_index("ix_components_category_name", table_name="components")
    op.drop_index("ix_components_last_outward_date", table_name="components")
    op.drop_index("ix_components_category", table_name="components")
    op.drop_index("ix_components_part_number", table_name="components")
    op.drop_index("ix_components_component_name", table_name="components")
    op.drop_index("ix_components_id", table_name="components")
    op.drop_table("components")
