"""create_form_tables

Revision ID: 3c9e51d0a7b2
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c9e51d0a7b2"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "forms",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="draft"),
        sa.Column("share_type", sa.String(), nullable=False, server_default="users"),
        sa.Column("builder_mode", sa.String(), nullable=False, server_default="visual"),
        sa.Column("custom_html", sa.Text(), nullable=True),
        sa.Column("custom_css", sa.Text(), nullable=True),
        sa.Column("custom_js", sa.Text(), nullable=True),
        sa.Column(
            "submit_button_text",
            sa.String(),
            nullable=False,
            server_default="Enviar respuesta",
        ),
        sa.Column(
            "submit_button_color", sa.String(), nullable=False, server_default="#f97316"
        ),
        sa.Column("url_params", sa.JSON(), nullable=True),
        sa.Column("publish_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("publish_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )
    op.create_index("ix_forms_title", "forms", ["title"])

    op.create_table(
        "form_fields",
        sa.Column("pk", sa.String(length=36), primary_key=True),
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column(
            "form_id",
            sa.String(length=36),
            sa.ForeignKey("forms.id", ondelete="CASCADE"),
        ),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("label", sa.Text(), nullable=False),
        sa.Column("placeholder", sa.Text(), nullable=True),
        sa.Column("required", sa.Boolean(), nullable=True),
        sa.Column("options", sa.JSON(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("conditional_logic", sa.JSON(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.UniqueConstraint("form_id", "id", name="uq_form_fields_form_id_id"),
    )
    op.create_index("ix_form_fields_form_id", "form_fields", ["form_id"])

    op.create_table(
        "form_responses",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "form_id",
            sa.String(length=36),
            sa.ForeignKey("forms.id", ondelete="CASCADE"),
        ),
        sa.Column("respondent_email", sa.String(), nullable=True),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column("url_params", sa.JSON(), nullable=True),
        sa.Column(
            "submitted_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )
    op.create_index("ix_form_responses_form_id", "form_responses", ["form_id"])

    op.create_table(
        "charts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "form_id",
            sa.String(length=36),
            sa.ForeignKey("forms.id", ondelete="CASCADE"),
        ),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("chart_type", sa.String(), nullable=False),
        sa.Column("x_axis_field", sa.String(), nullable=False),
        sa.Column("y_axis_field", sa.String(), nullable=True),
        sa.Column("aggregation_type", sa.String(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )
    op.create_index("ix_charts_form_id", "charts", ["form_id"])

    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "form_id",
            sa.String(length=36),
            sa.ForeignKey("forms.id", ondelete="CASCADE"),
        ),
        sa.Column("username", sa.String(), nullable=True),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("tool_calls", sa.JSON(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )
    op.create_index("ix_chat_messages_id", "chat_messages", ["id"])
    op.create_index("ix_chat_messages_form_id", "chat_messages", ["form_id"])

    op.create_table(
        "ai_usage_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("provider", sa.String(), nullable=False),
        sa.Column("model", sa.String(), nullable=False),
        sa.Column("form_id", sa.String(length=36), nullable=True),
        sa.Column("username", sa.String(), nullable=True),
        sa.Column("prompt_tokens", sa.Integer(), nullable=True),
        sa.Column("completion_tokens", sa.Integer(), nullable=True),
        sa.Column("total_tokens", sa.Integer(), nullable=True),
        sa.Column("estimated_cost", sa.Float(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )
    op.create_index("ix_ai_usage_logs_id", "ai_usage_logs", ["id"])
    op.create_index("ix_ai_usage_logs_form_id", "ai_usage_logs", ["form_id"])


def downgrade() -> None:
    op.drop_table("ai_usage_logs")
    op.drop_table("chat_messages")
    op.drop_table("charts")
    op.drop_table("form_responses")
    op.drop_table("form_fields")
    op.drop_table("forms")
