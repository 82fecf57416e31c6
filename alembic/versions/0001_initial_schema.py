"""initial schema: users, companies, visitors, visits

Revision ID: 0001
Revises:
Create Date: 2024-10-01 09:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_company_name", "users", ["company_name"])

    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("first_name", sa.String(255), nullable=False),
        sa.Column("last_name", sa.String(255), nullable=True),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("mobile_number", sa.String(20), nullable=True),
        sa.Column("admin_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_companies_company_name", "companies", ["company_name"])
    op.create_index("ix_companies_admin_id", "companies", ["admin_id"])

    op.create_table(
        "visitors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("designation", sa.String(255), nullable=True),
        sa.Column("company", sa.String(255), nullable=True),
        sa.Column("company_tel", sa.String(20), nullable=True),
        sa.Column("website", sa.String(255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("photo", sa.Text(), nullable=True),
        sa.Column("id_card_photo", sa.Text(), nullable=True),
        sa.Column("id_card_number", sa.String(50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_visitors_id", "visitors", ["id"])
    op.create_index("ix_visitors_email", "visitors", ["email"])

    op.create_table(
        "visits",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("visitor_id", sa.Integer(), sa.ForeignKey("visitors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("host_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("items_carried", sa.Text(), nullable=True),
        sa.Column("check_in_time", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("check_out_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("visitor_email", sa.String(255), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=False),
    )
    op.create_index("ix_visits_id", "visits", ["id"])
    op.create_index("ix_visits_host_id", "visits", ["host_id"])
    op.create_index("ix_visits_check_in_time", "visits", ["check_in_time"])
    op.create_index(
        "uq_visits_active_visitor_company",
        "visits",
        ["visitor_email", "company_name"],
        unique=True,
        postgresql_where=sa.text("check_out_time IS NULL"),
        sqlite_where=sa.text("check_out_time IS NULL"),
    )


def downgrade():
    op.drop_index("uq_visits_active_visitor_company", table_name="visits")
    op.drop_table("visits")
    op.drop_table("visitors")
    op.drop_table("companies")
    op.drop_table("users")
