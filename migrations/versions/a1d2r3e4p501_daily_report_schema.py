"""Daily report schema: org chart, reports, visits, attachments, approval ledger, comments

Revision ID: a1d2r3e4p501
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "a1d2r3e4p501"
down_revision = None
branch_labels = None
depends_on = None

_REPORT_STATUS = ("draft", "submitted", "manager_approved", "approved", "rejected")
_VISIT_RESULT = ("negotiating", "closed_won", "closed_lost", "information_gathering", "other")


def upgrade():
    op.create_table(
        "positions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False, comment="1=Staff | 2=Manager | 3=Director"),
    )

    op.create_table(
        "salespersons",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("position_id", sa.Integer(), sa.ForeignKey("positions.id"), nullable=False),
        sa.Column("manager_id", sa.Integer(), sa.ForeignKey("salespersons.id", ondelete="SET NULL"), index=True),
        sa.Column("director_id", sa.Integer(), sa.ForeignKey("salespersons.id", ondelete="SET NULL"), index=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "daily_reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("salesperson_id", sa.Integer(), sa.ForeignKey("salespersons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("report_date", sa.Date(), nullable=False),
        sa.Column("problem", sa.Text()),
        sa.Column("plan", sa.Text()),
        sa.Column(
            "status",
            sa.Enum(*_REPORT_STATUS, name="report_status", native_enum=False, length=20,
                    create_constraint=False),
            nullable=False,
            server_default="draft",
        ),
        sa.Column("submitted_at", sa.DateTime(timezone=True)),
        sa.Column("manager_approved_at", sa.DateTime(timezone=True)),
        sa.Column("director_approved_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("salesperson_id", "report_date", name="uq_daily_report_salesperson_date"),
    )
    op.create_index("ix_daily_reports_status_submitted", "daily_reports", ["status", "submitted_at"])

    op.create_table(
        "visit_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("daily_report_id", sa.Integer(), sa.ForeignKey("daily_reports.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("visit_time", sa.Time()),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "result",
            sa.Enum(*_VISIT_RESULT, name="visit_result", native_enum=False, length=30,
                    create_constraint=False),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "attachments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("visit_record_id", sa.Integer(), sa.ForeignKey("visit_records.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("file_name", sa.String(255), nullable=False, comment="Original client file name"),
        sa.Column("file_path", sa.String(255), nullable=False, comment="Storage key inside UPLOAD_FOLDER"),
        sa.Column("content_type", sa.String(100), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "approval_histories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("daily_report_id", sa.Integer(), sa.ForeignKey("daily_reports.id", ondelete="CASCADE"), nullable=False),
        sa.Column("approver_id", sa.Integer(), sa.ForeignKey("salespersons.id"), nullable=False),
        sa.Column(
            "action",
            sa.Enum("approved", "rejected", name="approval_action", native_enum=False, length=20,
                    create_constraint=False),
            nullable=False,
        ),
        sa.Column("comment", sa.Text()),
        sa.Column(
            "approval_level",
            sa.Enum("manager", "director", name="approval_level", native_enum=False, length=20,
                    create_constraint=False),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_approval_histories_report_created", "approval_histories", ["daily_report_id", "created_at"],
    )

    op.create_table(
        "report_comments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("daily_report_id", sa.Integer(), sa.ForeignKey("daily_reports.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("commenter_id", sa.Integer(), sa.ForeignKey("salespersons.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table("report_comments")
    op.drop_index("ix_approval_histories_report_created", table_name="approval_histories")
    op.drop_table("approval_histories")
    op.drop_table("attachments")
    op.drop_table("visit_records")
    op.drop_index("ix_daily_reports_status_submitted", table_name="daily_reports")
    op.drop_table("daily_reports")
    op.drop_table("customers")
    op.drop_table("salespersons")
    op.drop_table("positions")
