"""Initial schema: plans, subscriptions, rewards, points ledger, classes, bookings.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "plans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("cadence", sa.String(20), nullable=False),
        sa.Column("features", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.CheckConstraint("price >= 0", name="check_plan_price_non_negative"),
        sa.CheckConstraint(
            "cadence IN ('daily', 'weekly', 'monthly', 'yearly', 'lifetime')",
            name="check_plan_cadence",
        ),
    )
    op.create_index("ix_plans_id", "plans", ["id"])

    # No expiry column: expiry is derived from start_date and the plan's cadence
    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("plan_id", sa.Integer(), sa.ForeignKey("plans.id"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("backdated", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
    )
    op.create_index("ix_subscriptions_id", "subscriptions", ["id"])
    op.create_index("ix_subscriptions_subject_id", "subscriptions", ["subject_id"])
    op.create_index("ix_subscriptions_plan_id", "subscriptions", ["plan_id"])

    op.create_table(
        "rewards",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("image", sa.String(1024), nullable=True),
        sa.Column("cost_points", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("cost_points > 0", name="check_reward_cost_positive"),
    )
    op.create_index("ix_rewards_id", "rewards", ["id"])

    op.create_table(
        "points_accounts",
        sa.Column("subject_id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "ledger_transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("subject_id", sa.Integer(), sa.ForeignKey("points_accounts.subject_id"), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("reward_id", sa.Integer(), sa.ForeignKey("rewards.id"), nullable=True),
        sa.Column("description", sa.String(255), nullable=False, server_default=""),
        sa.Column("reference", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("subject_id", "sequence", name="uq_ledger_subject_sequence"),
        sa.UniqueConstraint("subject_id", "reference", name="uq_ledger_subject_reference"),
        sa.CheckConstraint("delta <> 0", name="check_ledger_delta_non_zero"),
        sa.CheckConstraint("reward_id IS NULL OR delta < 0", name="check_ledger_reward_only_on_debit"),
    )
    op.create_index("ix_ledger_transactions_id", "ledger_transactions", ["id"])
    op.create_index("ix_ledger_transactions_subject_id", "ledger_transactions", ["subject_id"])
    # History and balance queries always filter by subject and order by time
    op.create_index("ix_ledger_subject_created", "ledger_transactions", ["subject_id", "created_at"])

    op.create_table(
        "gym_classes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default=sa.text("60")),
        sa.Column("difficulty", sa.String(20), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("duration_minutes > 0", name="check_class_duration_positive"),
    )
    op.create_index("ix_gym_classes_id", "gym_classes", ["id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("class_id", sa.Integer(), sa.ForeignKey("gym_classes.id"), nullable=False),
        sa.Column("occurrence_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'scheduled'")),
        *_timestamps(),
        sa.CheckConstraint("status IN ('scheduled', 'archived')", name="check_booking_status"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_subject_id", "bookings", ["subject_id"])
    op.create_index("ix_bookings_class_id", "bookings", ["class_id"])
    # At most one active booking per member, class and occurrence.
    # Archived rows are outside the index and never block a new booking.
    op.create_index(
        "uq_active_booking",
        "bookings",
        ["subject_id", "class_id", "occurrence_time"],
        unique=True,
        postgresql_where=sa.text("status = 'scheduled'"),
    )


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("gym_classes")
    op.drop_table("ledger_transactions")
    op.drop_table("points_accounts")
    op.drop_table("rewards")
    op.drop_table("subscriptions")
    op.drop_table("plans")
