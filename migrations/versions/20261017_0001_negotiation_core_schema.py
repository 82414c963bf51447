"""negotiation core schema: trainings, requests, invoices and transition audit

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 00:00:01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None

OPEN_REQUEST_PREDICATE = sa.text("status IN ('PENDING', 'ACCEPTED')")


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_name", sa.String(), nullable=False),
        sa.Column("contact_name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_companies_id", "companies", ["id"])

    op.create_table(
        "trainers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("daily_rate", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_trainers_id", "trainers", ["id"])

    op.create_table(
        "topics",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index("ix_topics_id", "topics", ["id"])

    op.create_table(
        "trainings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("topic_id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("participant_count", sa.Integer(), nullable=False),
        sa.Column("daily_rate", sa.Float(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("accepted_request_id", sa.Integer(), nullable=True),
        sa.Column("allocation_version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["topic_id"], ["topics.id"]),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_trainings_id", "trainings", ["id"])
    op.create_index("idx_trainings_status", "trainings", ["status"])
    op.create_index("idx_trainings_company_status", "trainings", ["company_id", "status"])

    op.create_table(
        "training_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("training_id", sa.Integer(), nullable=False),
        sa.Column("trainer_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("pending_confirmation_by", sa.String(), nullable=False, server_default="NONE"),
        sa.Column("counter_price", sa.Float(), nullable=True),
        sa.Column("company_counter_price", sa.Float(), nullable=True),
        sa.Column("agreed_price", sa.Float(), nullable=True),
        sa.Column("decline_reason", sa.String(), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["training_id"], ["trainings.id"]),
        sa.ForeignKeyConstraint(["trainer_id"], ["trainers.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_training_requests_id", "training_requests", ["id"])
    op.create_index("idx_training_requests_training_status", "training_requests", ["training_id", "status"])
    op.create_index("idx_training_requests_trainer", "training_requests", ["trainer_id"])
    op.create_index(
        "uq_training_requests_open_pair",
        "training_requests",
        ["training_id", "trainer_id"],
        unique=True,
        sqlite_where=OPEN_REQUEST_PREDICATE,
        postgresql_where=OPEN_REQUEST_PREDICATE,
    )

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("invoice_number", sa.String(), nullable=False),
        sa.Column("training_id", sa.Integer(), nullable=False),
        sa.Column("training_request_id", sa.Integer(), nullable=False),
        sa.Column("trainer_id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["training_id"], ["trainings.id"]),
        sa.ForeignKeyConstraint(["training_request_id"], ["training_requests.id"]),
        sa.ForeignKeyConstraint(["trainer_id"], ["trainers.id"]),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("invoice_number"),
        sa.UniqueConstraint("training_request_id", name="uq_invoices_training_request_id"),
    )
    op.create_index("ix_invoices_id", "invoices", ["id"])
    op.create_index("idx_invoices_training", "invoices", ["training_id"])

    op.create_table(
        "request_transition_audit",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("training_request_id", sa.Integer(), nullable=False),
        sa.Column("training_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("actor", sa.String(), nullable=False),
        sa.Column("from_status", sa.String(), nullable=False),
        sa.Column("to_status", sa.String(), nullable=False),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["training_request_id"], ["training_requests.id"]),
        sa.ForeignKeyConstraint(["training_id"], ["trainings.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_request_transition_audit_id", "request_transition_audit", ["id"])
    op.create_index("idx_request_transition_audit_request", "request_transition_audit", ["training_request_id"])
    op.create_index("idx_request_transition_audit_training", "request_transition_audit", ["training_id"])


def downgrade() -> None:
    op.drop_index("idx_request_transition_audit_training", table_name="request_transition_audit")
    op.drop_index("idx_request_transition_audit_request", table_name="request_transition_audit")
    op.drop_index("ix_request_transition_audit_id", table_name="request_transition_audit")
    op.drop_table("request_transition_audit")

    op.drop_index("idx_invoices_training", table_name="invoices")
    op.drop_index("ix_invoices_id", table_name="invoices")
    op.drop_table("invoices")

    op.drop_index("uq_training_requests_open_pair", table_name="training_requests")
    op.drop_index("idx_training_requests_trainer", table_name="training_requests")
    op.drop_index("idx_training_requests_training_status", table_name="training_requests")
    op.drop_index("ix_training_requests_id", table_name="training_requests")
    op.drop_table("training_requests")

    op.drop_index("idx_trainings_company_status", table_name="trainings")
    op.drop_index("idx_trainings_status", table_name="trainings")
    op.drop_index("ix_trainings_id", table_name="trainings")
    op.drop_table("trainings")

    op.drop_index("ix_topics_id", table_name="topics")
    op.drop_table("topics")

    op.drop_index("ix_trainers_id", table_name="trainers")
    op.drop_table("trainers")

    op.drop_index("ix_companies_id", table_name="companies")
    op.drop_table("companies")
