# backend/alembic/versions/001_booking_engine.py
"""Booking engine - members, slots, quotas, bookings and ledgers

Revision ID: 001_booking_engine
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the full schema for the studio booking engine.

Capacity and quota counters are guarded by check constraints so that the
conditional updates in the repositories can never drive them out of range,
and the partial unique index on bookings stops a member holding two live
seats in the same slot.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_booking_engine"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _json_type() -> sa.types.TypeEngine:
    return postgresql.JSONB(astext_type=sa.Text()).with_variant(sa.JSON(), "sqlite")


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    """Create booking engine tables."""
    print("Creating booking engine tables...")

    op.create_table(
        "users",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("stripe_customer_id", sa.String(255), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("user_status", sa.String(20), nullable=False, server_default="active"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "membership_tiers",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration", sa.String(20), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("sessions_per_week", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("stripe_price_id", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.CheckConstraint(
            "sessions_per_week >= 0", name="ck_membership_tiers_sessions_non_negative"
        ),
        sa.CheckConstraint(
            "duration IN ('weekly', 'monthly', 'quarterly', 'annual')",
            name="ck_membership_tiers_duration",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "memberships",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("user_id", sa.String(26), nullable=False),
        sa.Column("tier_id", sa.String(26), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("stripe_payment_intent_id", sa.String(255), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["tier_id"], ["membership_tiers.id"]),
        sa.CheckConstraint(
            "status IN ('active', 'expired', 'cancelled', 'pending')",
            name="ck_memberships_status",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_memberships_user_id", "memberships", ["user_id"])
    op.create_index(
        "ix_memberships_stripe_payment_intent_id", "memberships", ["stripe_payment_intent_id"]
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("user_id", sa.String(26), nullable=False),
        sa.Column("tier_id", sa.String(26), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_provider", sa.String(50), nullable=False, server_default="stripe"),
        sa.Column("provider_subscription_id", sa.String(255), nullable=True),
        sa.Column("provider_customer_id", sa.String(255), nullable=True),
        sa.Column("current_period_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("suspended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["tier_id"], ["membership_tiers.id"]),
        sa.UniqueConstraint("provider_subscription_id"),
        sa.CheckConstraint(
            "status IN ('active', 'past_due', 'suspended', 'cancelled', 'pending', 'unpaid')",
            name="ck_subscriptions_status",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])

    op.create_table(
        "service_types",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "session_slots",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("service_type_id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("starts_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ends_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("booked_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("trainer_name", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.ForeignKeyConstraint(["service_type_id"], ["service_types.id"]),
        sa.CheckConstraint("capacity >= 1", name="ck_session_slots_capacity_positive"),
        sa.CheckConstraint(
            "booked_count >= 0 AND booked_count <= capacity",
            name="ck_session_slots_booked_within_capacity",
        ),
        sa.CheckConstraint("starts_at_utc < ends_at_utc", name="ck_session_slots_time_order"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_session_slots_service_type_id", "session_slots", ["service_type_id"])
    op.create_index("ix_session_slots_starts_at_utc", "session_slots", ["starts_at_utc"])

    op.create_table(
        "weekly_usage",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("user_id", sa.String(26), nullable=False),
        sa.Column("week_start_date", sa.Date(), nullable=False),
        sa.Column("sessions_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sessions_limit_snapshot", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.UniqueConstraint("user_id", "week_start_date", name="uq_weekly_usage_user_week"),
        sa.CheckConstraint("sessions_used >= 0", name="ck_weekly_usage_used_non_negative"),
        sa.CheckConstraint(
            "sessions_limit_snapshot >= 0", name="ck_weekly_usage_limit_non_negative"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_weekly_usage_user_id", "weekly_usage", ["user_id"])
    op.create_index("ix_weekly_usage_week_start_date", "weekly_usage", ["week_start_date"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("user_id", sa.String(26), nullable=False),
        sa.Column("session_slot_id", sa.String(26), nullable=True),
        sa.Column("service_type_id", sa.String(26), nullable=False),
        sa.Column("booking_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="confirmed"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("stripe_payment_intent_id", sa.String(255), nullable=True),
        sa.Column("quota_week_start_date", sa.Date(), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["session_slot_id"], ["session_slots.id"]),
        sa.ForeignKeyConstraint(["service_type_id"], ["service_types.id"]),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'no_show')",
            name="ck_bookings_status",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_session_slot_id", "bookings", ["session_slot_id"])
    # One live booking per member per slot
    op.create_index(
        "uq_bookings_user_slot_active",
        "bookings",
        ["user_id", "session_slot_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
        sqlite_where=sa.text("status <> 'cancelled'"),
    )

    op.create_table(
        "gift_vouchers",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("purchaser_user_id", sa.String(26), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("recipient_name", sa.String(255), nullable=True),
        sa.Column("recipient_email", sa.String(320), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("stripe_payment_intent_id", sa.String(255), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("redeemed_by_user_id", sa.String(26), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["purchaser_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["redeemed_by_user_id"], ["users.id"]),
        sa.UniqueConstraint("code"),
        sa.UniqueConstraint("stripe_payment_intent_id"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_gift_vouchers_purchaser_user_id", "gift_vouchers", ["purchaser_user_id"]
    )

    op.create_table(
        "payment_transactions",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("user_id", sa.String(26), nullable=True),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(10), nullable=False, server_default="aud"),
        sa.Column("transaction_type", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("stripe_payment_intent_id", sa.String(255), nullable=True),
        sa.Column("stripe_invoice_id", sa.String(255), nullable=True),
        sa.Column("subscription_id", sa.String(26), nullable=True),
        sa.Column("membership_id", sa.String(26), nullable=True),
        sa.Column("booking_id", sa.String(26), nullable=True),
        sa.Column("gift_voucher_id", sa.String(26), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["subscription_id"], ["subscriptions.id"]),
        sa.ForeignKeyConstraint(["membership_id"], ["memberships.id"]),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"]),
        sa.ForeignKeyConstraint(["gift_voucher_id"], ["gift_vouchers.id"]),
        sa.CheckConstraint(
            "transaction_type IN ('membership', 'booking', 'gift_voucher', 'subscription', 'refund')",
            name="ck_payment_transactions_type",
        ),
        sa.CheckConstraint(
            "status IN ('succeeded', 'failed', 'pending', 'refunded')",
            name="ck_payment_transactions_status",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payment_transactions_user_id", "payment_transactions", ["user_id"])

    op.create_table(
        "admin_overrides",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("user_id", sa.String(26), nullable=False),
        sa.Column("admin_user_id", sa.String(26), nullable=False),
        sa.Column("change_type", sa.String(30), nullable=False),
        sa.Column("session_delta", sa.Integer(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["admin_user_id"], ["users.id"]),
        sa.CheckConstraint(
            "change_type IN ('add_sessions', 'remove_sessions', 'suspend', 'reactivate')",
            name="ck_admin_overrides_change_type",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_admin_overrides_user_created", "admin_overrides", ["user_id", "created_at"]
    )

    op.create_table(
        "webhook_events",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("event_id", sa.String(255), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("payload", _json_type(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="processing"),
        sa.Column("processing_error", sa.Text(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "received_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("provider", "event_id", name="uq_webhook_events_provider_event_id"),
        sa.CheckConstraint(
            "status IN ('processing', 'processed', 'failed')",
            name="ck_webhook_events_status",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_webhook_events_event_type", "webhook_events", ["event_type"])
    op.create_index("ix_webhook_events_status", "webhook_events", ["status"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=True),
        sa.Column("actor_id", sa.String(26), nullable=True),
        sa.Column("details", _json_type(), nullable=True),
        sa.Column(
            "occurred_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "scheduler_markers",
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("week_start_date", sa.Date(), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("name"),
    )

    print("Booking engine tables created successfully!")


def downgrade() -> None:
    """Drop booking engine tables."""
    print("Dropping booking engine tables...")

    op.drop_table("scheduler_markers")
    op.drop_table("audit_logs")
    op.drop_index("ix_webhook_events_status", table_name="webhook_events")
    op.drop_index("ix_webhook_events_event_type", table_name="webhook_events")
    op.drop_table("webhook_events")
    op.drop_index("ix_admin_overrides_user_created", table_name="admin_overrides")
    op.drop_table("admin_overrides")
    op.drop_index("ix_payment_transactions_user_id", table_name="payment_transactions")
    op.drop_table("payment_transactions")
    op.drop_index("ix_gift_vouchers_purchaser_user_id", table_name="gift_vouchers")
    op.drop_table("gift_vouchers")
    op.drop_index("uq_bookings_user_slot_active", table_name="bookings")
    op.drop_index("ix_bookings_session_slot_id", table_name="bookings")
    op.drop_index("ix_bookings_user_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_weekly_usage_week_start_date", table_name="weekly_usage")
    op.drop_index("ix_weekly_usage_user_id", table_name="weekly_usage")
    op.drop_table("weekly_usage")
    op.drop_index("ix_session_slots_starts_at_utc", table_name="session_slots")
    op.drop_index("ix_session_slots_service_type_id", table_name="session_slots")
    op.drop_table("session_slots")
    op.drop_table("service_types")
    op.drop_index("ix_subscriptions_user_id", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_index("ix_memberships_stripe_payment_intent_id", table_name="memberships")
    op.drop_index("ix_memberships_user_id", table_name="memberships")
    op.drop_table("memberships")
    op.drop_table("membership_tiers")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    print("Booking engine tables dropped successfully!")
