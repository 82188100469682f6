"""Initial schema: organizations, members, invites, audit log, usage metering, plans

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f1a9c2d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLE_CHECK = "role IN ('owner', 'admin', 'member', 'viewer')"
INVITE_STATUS_CHECK = "status IN ('pending', 'accepted', 'revoked', 'expired')"


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def _org_fk() -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(["org_id"], ["organization.id"], ondelete="CASCADE")


def upgrade() -> None:
    """Create initial schema."""
    op.create_table(
        "organization",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column(
            "settings",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_organization_slug"), "organization", ["slug"], unique=True)

    op.create_table(
        "organization_member",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("org_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        _created_at(),
        _updated_at(),
        _org_fk(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("org_id", "user_id", name="uq_organization_member_org_user"),
        sa.CheckConstraint(ROLE_CHECK, name="organization_member_role_check"),
    )
    op.create_index(
        op.f("ix_organization_member_org_id"), "organization_member", ["org_id"]
    )
    op.create_index(
        op.f("ix_organization_member_user_id"), "organization_member", ["user_id"]
    )

    op.create_table(
        "organization_invite",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("org_id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("token", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("invited_by", sa.String(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _org_fk(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(ROLE_CHECK, name="organization_invite_role_check"),
        sa.CheckConstraint(
            INVITE_STATUS_CHECK, name="organization_invite_status_check"
        ),
    )
    op.create_index(
        op.f("ix_organization_invite_token"),
        "organization_invite",
        ["token"],
        unique=True,
    )
    op.create_index(
        op.f("ix_organization_invite_org_id"), "organization_invite", ["org_id"]
    )
    op.create_index(
        op.f("ix_organization_invite_email"), "organization_invite", ["email"]
    )

    # Append-only audit trail
    op.create_table(
        "audit_log",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("org_id", sa.String(), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("entity_type", sa.String(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=False),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        _created_at(),
        _org_fk(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_log_org_id"), "audit_log", ["org_id"])
    op.create_index(op.f("ix_audit_log_actor_id"), "audit_log", ["actor_id"])
    op.create_index("ix_audit_log_org_created", "audit_log", ["org_id", "created_at"])
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_type", "entity_id"])

    op.create_table(
        "usage_event",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("org_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("quantity", sa.Integer(), server_default="1", nullable=False),
        sa.Column(
            "event_data",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        _created_at(),
        _org_fk(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_usage_event_org_id"), "usage_event", ["org_id"])
    op.create_index(op.f("ix_usage_event_user_id"), "usage_event", ["user_id"])
    op.create_index(
        "ix_usage_event_org_type_created",
        "usage_event",
        ["org_id", "event_type", "created_at"],
    )

    op.create_table(
        "api_usage",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("org_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("endpoint", sa.String(), nullable=False),
        sa.Column("method", sa.String(length=10), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=False),
        sa.Column("response_time_ms", sa.Integer(), nullable=False),
        sa.Column("ip_address", sa.String(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        _created_at(),
        _org_fk(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_api_usage_org_id"), "api_usage", ["org_id"])
    op.create_index("ix_api_usage_org_created", "api_usage", ["org_id", "created_at"])

    op.create_table(
        "usage_aggregation",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("org_id", sa.String(), nullable=False),
        sa.Column("metric_date", sa.Date(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("total_quantity", sa.Integer(), server_default="0", nullable=False),
        sa.Column("event_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("unique_users", sa.Integer(), server_default="0", nullable=False),
        _created_at(),
        _org_fk(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "org_id", "metric_date", "event_type", name="uq_usage_aggregation_day"
        ),
    )
    op.create_index(
        op.f("ix_usage_aggregation_org_id"), "usage_aggregation", ["org_id"]
    )

    op.create_table(
        "org_subscription",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("org_id", sa.String(), nullable=False),
        sa.Column("plan_name", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        _org_fk(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('active', 'trialing', 'past_due', 'canceled')",
            name="org_subscription_status_check",
        ),
    )
    op.create_index(op.f("ix_org_subscription_org_id"), "org_subscription", ["org_id"])
    op.create_index(op.f("ix_org_subscription_status"), "org_subscription", ["status"])

    op.create_table(
        "plan_feature",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("plan_name", sa.String(), nullable=False),
        sa.Column("feature_key", sa.String(), nullable=False),
        sa.Column(
            "feature_value",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("plan_name", "feature_key", name="uq_plan_feature_key"),
    )
    op.create_index(op.f("ix_plan_feature_plan_name"), "plan_feature", ["plan_name"])


def downgrade() -> None:
    """Drop initial schema."""
    op.drop_table("plan_feature")
    op.drop_table("org_subscription")
    op.drop_table("usage_aggregation")
    op.drop_table("api_usage")
    op.drop_table("usage_event")
    op.drop_table("audit_log")
    op.drop_table("organization_invite")
    op.drop_table("organization_member")
    op.drop_table("organization")
