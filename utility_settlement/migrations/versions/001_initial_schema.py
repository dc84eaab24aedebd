"""Initial schema: settlement engine tables.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-01 09:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

METER_TYPES = ("ELECTRICITY", "WATER", "GAS", "HEAT", "OTHER")
SPLIT_METHODS = ("BY_DAYS", "BY_PERSON", "EQUAL")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
    ]


def upgrade() -> None:
    # Create users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.Index("idx_users_is_active", "is_active"),
    )

    # Create properties table
    op.create_table(
        "properties",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_properties_owner_id", "owner_id"),
        sa.Index("idx_property_owner_active", "owner_id", "is_active"),
    )

    # Create tenants and contracts tables
    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("move_in_date", sa.Date(), nullable=True),
        sa.Column("move_out_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_tenants_property_id", "property_id"),
        sa.Index("idx_tenant_property_move_in", "property_id", "move_in_date"),
    )
    op.create_table(
        "contracts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_contracts_property_id", "property_id"),
        sa.Index("ix_contracts_tenant_id", "tenant_id"),
    )

    # Create meters and meter_readings tables
    op.create_table(
        "meters",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.Enum(*METER_TYPES, name="metertype"), nullable=False),
        sa.Column("meter_number", sa.String(length=100), nullable=True),
        sa.Column("serial_number", sa.String(length=100), nullable=True),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("price_per_unit", sa.Numeric(precision=12, scale=4), nullable=True),
        sa.Column("status", sa.Enum("ACTIVE", "ARCHIVED", name="meterstatus"), nullable=False),
        sa.Column("install_date", sa.Date(), nullable=True),
        sa.Column("archive_date", sa.Date(), nullable=True),
        sa.Column("archive_note", sa.Text(), nullable=True),
        sa.Column("replaced_by_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.ForeignKeyConstraint(["replaced_by_id"], ["meters.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("replaced_by_id"),
        sa.Index("ix_meters_property_id", "property_id"),
        sa.Index("idx_meter_property_status", "property_id", "status"),
    )
    op.create_table(
        "meter_readings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("meter_id", sa.Integer(), nullable=False),
        sa.Column("value", sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column("reading_date", sa.Date(), nullable=False),
        sa.Column(
            "reading_type",
            sa.Enum("REGULAR", "INITIAL", "METER_EXCHANGE", name="readingtype"),
            nullable=False,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["meter_id"], ["meters.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_meter_readings_meter_id", "meter_id"),
        sa.Index("idx_reading_meter_date", "meter_id", "reading_date"),
    )

    # Create utility_rates table
    op.create_table(
        "utility_rates",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("meter_type", sa.Enum(*METER_TYPES, name="metertype"), nullable=False),
        sa.Column("price_per_unit", sa.Numeric(precision=12, scale=4), nullable=False),
        sa.Column("effective_from", sa.Date(), nullable=False),
        sa.Column("effective_to", sa.Date(), nullable=True),
        sa.Column("source", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_utility_rates_property_id", "property_id"),
        sa.Index("idx_rate_property_type_from", "property_id", "meter_type", "effective_from"),
    )

    # Create fixed_utilities table
    op.create_table(
        "fixed_utilities",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column(
            "type",
            sa.Enum(
                "INTERNET",
                "GARBAGE",
                "ADMIN_FEE",
                "PARKING",
                "TV_CABLE",
                "SECURITY",
                "ELEVATOR",
                "OTHER",
                name="fixedutilitytype",
            ),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("period_cost", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("split_method", sa.Enum(*SPLIT_METHODS, name="splitmethod"), nullable=False),
        sa.Column("is_per_person", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("active_from", sa.Date(), nullable=True),
        sa.Column("active_to", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_fixed_utilities_property_id", "property_id"),
        sa.Index("ix_fixed_utilities_is_active", "is_active"),
    )

    # Create advance_payments table
    op.create_table(
        "advance_payments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("paid_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("idx_advance_tenant_paid", "tenant_id", "paid_date"),
    )

    # Create settlements, settlement_items and settlement_shares tables
    op.create_table(
        "settlements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("created_by_id", sa.Integer(), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column(
            "approach",
            sa.Enum(
                "MONTHLY",
                "QUARTERLY",
                "SEMI_ANNUAL",
                "ANNUAL",
                "ADVANCE_PAYMENT",
                name="billingapproach",
            ),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum("DRAFT", "FINALIZED", "VOIDED", name="settlementstatus"),
            nullable=False,
        ),
        sa.Column("calculated_total", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("total_amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("warnings", sa.JSON(), nullable=True),
        sa.Column("finalized_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("voided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("void_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_settlements_property_id", "property_id"),
        sa.Index("ix_settlements_status", "status"),
        sa.Index("idx_settlement_property_period", "property_id", "period_start"),
    )
    op.create_table(
        "settlement_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("settlement_id", sa.Integer(), nullable=False),
        sa.Column("meter_id", sa.Integer(), nullable=True),
        sa.Column("fixed_utility_id", sa.Integer(), nullable=True),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=True),
        sa.Column("prev_reading", sa.Numeric(precision=14, scale=3), nullable=True),
        sa.Column("curr_reading", sa.Numeric(precision=14, scale=3), nullable=True),
        sa.Column("consumption", sa.Numeric(precision=14, scale=3), nullable=True),
        sa.Column("rate", sa.Numeric(precision=12, scale=4), nullable=True),
        sa.Column("period_cost", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("total_cost", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("split_method", sa.Enum(*SPLIT_METHODS, name="splitmethod"), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["settlement_id"], ["settlements.id"]),
        sa.ForeignKeyConstraint(["meter_id"], ["meters.id"]),
        sa.ForeignKeyConstraint(["fixed_utility_id"], ["fixed_utilities.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_settlement_items_settlement_id", "settlement_id"),
    )
    op.create_table(
        "settlement_shares",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("settlement_id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("active_days", sa.Numeric(precision=10, scale=4), nullable=False),
        sa.Column("total_days", sa.Integer(), nullable=False),
        sa.Column("share_ratio", sa.Numeric(precision=8, scale=6), nullable=False),
        sa.Column("calculated_amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("adjusted_amount", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("final_amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("advances_paid", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("balance_due", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("owner_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["settlement_id"], ["settlements.id"]),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_settlement_shares_settlement_id", "settlement_id"),
        sa.Index("ix_settlement_shares_tenant_id", "tenant_id"),
    )

    # Create ledger_entries table
    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("settlement_id", sa.Integer(), nullable=True),
        sa.Column(
            "entry_type",
            sa.Enum("CHARGE", "ADVANCE_PAYMENT", "REVERSAL", name="ledgerentrytype"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("balance_after", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("reverses_entry_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.ForeignKeyConstraint(["settlement_id"], ["settlements.id"]),
        sa.ForeignKeyConstraint(["reverses_entry_id"], ["ledger_entries.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("reverses_entry_id"),
        sa.Index("ix_ledger_entries_settlement_id", "settlement_id"),
        sa.Index("idx_ledger_tenant_property", "tenant_id", "property_id", "id"),
    )

    # Create audit_logs table
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("entity_type", sa.String(), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("ledger_entries")
    op.drop_table("settlement_shares")
    op.drop_table("settlement_items")
    op.drop_table("settlements")
    op.drop_table("advance_payments")
    op.drop_table("fixed_utilities")
    op.drop_table("utility_rates")
    op.drop_table("meter_readings")
    op.drop_table("meters")
    op.drop_table("contracts")
    op.drop_table("tenants")
    op.drop_table("properties")
    op.drop_table("users")
