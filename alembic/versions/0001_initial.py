"""initial schema: users, economic groups and their satellites

Revision ID: 0001
Revises:
Create Date: 2026-10-18 10:00:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("auth_provider_id", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
        sa.UniqueConstraint("auth_provider_id", name=op.f("uq_users_auth_provider_id")),
        sa.UniqueConstraint("email", name=op.f("uq_users_email")),
    )

    op.create_table(
        "economic_groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("controller_tax_id", sa.String(length=12), nullable=True),
        sa.Column("primary_country", sa.String(length=2), nullable=False),
        sa.Column("base_currency", sa.String(length=3), nullable=False),
        sa.Column("active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.CheckConstraint(
            "length(name) >= 3", name=op.f("ck_economic_groups_name_min_length")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_economic_groups")),
    )
    op.create_index(
        op.f("ix_economic_groups_primary_country"), "economic_groups", ["primary_country"]
    )
    op.create_index(op.f("ix_economic_groups_active"), "economic_groups", ["active"])

    op.create_table(
        "accounting_configurations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("allow_postings_in_closed_period", sa.Boolean(), nullable=False),
        sa.Column("require_global_approval", sa.Boolean(), nullable=False),
        sa.Column("min_approval_amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("allow_unbalanced_postings", sa.Boolean(), nullable=False),
        sa.Column("amount_decimals", sa.Integer(), nullable=False),
        sa.Column("exchange_rate_decimals", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["economic_groups.id"],
            name=op.f("fk_accounting_configurations_group_id_economic_groups"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_accounting_configurations")),
        sa.UniqueConstraint("group_id", name=op.f("uq_accounting_configurations_group_id")),
    )

    op.create_table(
        "charts_of_accounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["economic_groups.id"],
            name=op.f("fk_charts_of_accounts_group_id_economic_groups"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_charts_of_accounts")),
        sa.UniqueConstraint("group_id", name=op.f("uq_charts_of_accounts_group_id")),
    )

    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("trade_name", sa.String(length=200), nullable=True),
        sa.Column("tax_id", sa.String(length=12), nullable=False),
        sa.Column("country", sa.String(length=2), nullable=False),
        sa.Column("functional_currency", sa.String(length=3), nullable=False),
        sa.Column("active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["economic_groups.id"],
            name=op.f("fk_companies_group_id_economic_groups"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_companies")),
    )
    op.create_index(op.f("ix_companies_group_id"), "companies", ["group_id"])

    op.create_table(
        "user_group_memberships",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name=op.f("fk_user_group_memberships_user_id_users")
        ),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["economic_groups.id"],
            name=op.f("fk_user_group_memberships_group_id_economic_groups"),
        ),
        sa.PrimaryKeyConstraint("user_id", "group_id", name=op.f("pk_user_group_memberships")),
    )


def downgrade() -> None:
    op.drop_table("user_group_memberships")
    op.drop_index(op.f("ix_companies_group_id"), table_name="companies")
    op.drop_table("companies")
    op.drop_table("charts_of_accounts")
    op.drop_table("accounting_configurations")
    op.drop_index(op.f("ix_economic_groups_active"), table_name="economic_groups")
    op.drop_index(op.f("ix_economic_groups_primary_country"), table_name="economic_groups")
    op.drop_table("economic_groups")
    op.drop_table("users")
