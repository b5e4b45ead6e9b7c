"""create applications, purchases, password tokens and audit logs

Revision ID: 001_create_marketplace_tables
Revises: 
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "001_create_marketplace_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "applications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), server_default=sa.text("'submitted'"), nullable=False),
        sa.Column("payment_status", sa.String(length=20), nullable=True),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("stripe_customer_id", sa.String(length=255), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(length=255), nullable=True),
        sa.Column("membership_session_id", sa.String(length=255), nullable=True),
        sa.Column("connected_account_id", sa.String(length=255), nullable=True),
        sa.Column("rate_sheet", sa.Text(), nullable=True),
        sa.Column("is_disabled", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("form_data", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("kind", "email", name="uq_applications_kind_email"),
        sa.UniqueConstraint("membership_session_id", name="uq_applications_membership_session_id"),
        sa.CheckConstraint(
            "status IN ('submitted', 'pending', 'pre-approved', 'approved', 'rejected', 'terminated')",
            name="ck_applications_status",
        ),
    )
    op.create_index("ix_applications_kind", "applications", ["kind"])
    op.create_index("ix_applications_stripe_customer_id", "applications", ["stripe_customer_id"])
    op.create_index("idx_applications_kind_status_created", "applications", ["kind", "status", sa.text("created_at DESC")])

    op.create_table(
        "purchases",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("coach_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("applications.id"), nullable=False),
        sa.Column("payer_email", sa.String(length=255), nullable=False),
        sa.Column("payer_name", sa.String(length=255), nullable=True),
        sa.Column("service_type", sa.String(length=20), nullable=False),
        sa.Column("gross_amount", sa.Integer(), nullable=False),
        sa.Column("platform_fee", sa.Integer(), nullable=False),
        sa.Column("payee_earnings", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), server_default=sa.text("'usd'"), nullable=False),
        sa.Column("source_session_id", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), server_default=sa.text("'completed'"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("source_session_id", name="uq_purchases_source_session_id"),
        sa.CheckConstraint("platform_fee + payee_earnings = gross_amount", name="ck_purchases_split_sums"),
        sa.CheckConstraint("platform_fee >= 0 AND payee_earnings >= 0", name="ck_purchases_non_negative"),
    )
    op.create_index("ix_purchases_coach_id", "purchases", ["coach_id"])

    op.create_table(
        "password_tokens",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "application_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("token", sa.String(length=128), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("token", name="uq_password_tokens_token"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("old_value", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("new_value", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("change_summary", sa.Text(), nullable=True),
        sa.Column("request_id", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_entity_id", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("password_tokens")
    op.drop_index("ix_purchases_coach_id", table_name="purchases")
    op.drop_table("purchases")
    op.drop_index("idx_applications_kind_status_created", table_name="applications")
    op.drop_index("ix_applications_stripe_customer_id", table_name="applications")
    op.drop_index("ix_applications_kind", table_name="applications")
    op.drop_table("applications")
