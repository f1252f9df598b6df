"""Initial schema.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-01 00:00:00.000000
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None

user_role = postgresql.ENUM("user", "vendor", "admin", name="user_role", create_type=False)
event_type = postgresql.ENUM("wedding", "mehendi", "birthday", "corporate", "other", name="event_type", create_type=False)
event_status = postgresql.ENUM("upcoming", "ongoing", "completed", "cancelled", name="event_status", create_type=False)
requirement_category = postgresql.ENUM(
    "Catering", "Photography", "Decoration", "Music", "Makeup", "Other",
    name="requirement_category",
    create_type=False,
)
requirement_status = postgresql.ENUM("open", "assigned", "completed", name="requirement_status", create_type=False)
proposal_status = postgresql.ENUM("pending", "approved", "rejected", name="proposal_status", create_type=False)

ENUMS = (user_role, event_type, event_status, requirement_category, requirement_status, proposal_status)


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", user_role, nullable=False, server_default="user"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"])

    # --- events ---
    op.create_table(
        "events",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("event_type", event_type, nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(500), nullable=False),
        sa.Column("organizer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", event_status, nullable=False, server_default="upcoming"),
        sa.Column("budget", sa.Float, nullable=True),
        sa.Column("guest_count", sa.Integer, nullable=True),
        sa.Column("images", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_events_date", "events", ["date"])
    op.create_index("ix_events_organizer_id", "events", ["organizer_id"])

    # --- event_requirements ---
    op.create_table(
        "event_requirements",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("event_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("category", requirement_category, nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("budget", sa.Float, nullable=True),
        sa.Column("status", requirement_status, nullable=False, server_default="open"),
        sa.Column("assigned_vendor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.CheckConstraint(
            "(status = 'open' AND assigned_vendor_id IS NULL)"
            " OR (status <> 'open' AND assigned_vendor_id IS NOT NULL)",
            name="ck_requirement_assignment",
        ),
    )
    op.create_index("ix_event_requirements_event_id", "event_requirements", ["event_id"])
    op.create_index("ix_event_requirements_status", "event_requirements", ["status"])

    # --- proposals ---
    op.create_table(
        "proposals",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("vendor_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("event_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "requirement_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("event_requirements.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("category", requirement_category, nullable=False),
        sa.Column("proposal", sa.Text, nullable=False),
        sa.Column("price", sa.Float, nullable=False),
        sa.Column("status", proposal_status, nullable=False, server_default="pending"),
        sa.Column("portfolio", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("previous_work", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_proposals_vendor_id", "proposals", ["vendor_id"])
    op.create_index("ix_proposals_event_id", "proposals", ["event_id"])
    op.create_index("ix_proposals_requirement_id", "proposals", ["requirement_id"])
    op.create_index("ix_proposals_status", "proposals", ["status"])

    # --- notifications ---
    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("event_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("proposal_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])

    # --- messages ---
    op.create_table(
        "messages",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("sender_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("receiver_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        sa.Column("event_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=True),
        sa.Column("vendor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
    op.create_index("ix_messages_receiver_id", "messages", ["receiver_id"])
    op.create_index("ix_messages_event_id", "messages", ["event_id"])
    op.create_index("ix_messages_created_at", "messages", ["created_at"])

    # --- audit_log ---
    op.create_table(
        "audit_log",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.String(255), nullable=True),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_log_user_id", "audit_log", ["user_id"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("messages")
    op.drop_table("notifications")
    op.drop_table("proposals")
    op.drop_table("event_requirements")
    op.drop_table("events")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
