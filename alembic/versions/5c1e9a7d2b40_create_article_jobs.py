"""Create article jobs table.

Revision ID: 5c1e9a7d2b40
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "5c1e9a7d2b40"
down_revision = None
branch_labels = None
depends_on = None

_UTC_NOW_ISO = sa.text("""to_char((now() AT TIME ZONE 'UTC'), 'YYYY-MM-DD"T"HH24:MI:SS"Z"')""")


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "article_jobs",
    sa.Column("job_id", sa.String(), nullable=False),
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("topic", sa.Text(), nullable=False),
    sa.Column("language", sa.String(), nullable=False),
    sa.Column("audience", sa.String(), nullable=False),
    sa.Column("author_persona", sa.String(), nullable=False),
    sa.Column("angle", sa.String(), nullable=False),
    sa.Column("content_goal", sa.String(), nullable=False),
    sa.Column("desired_length", sa.Integer(), nullable=False),
    sa.Column("complexity", sa.String(), nullable=False),
    sa.Column("constraints", sa.Text(), nullable=True),
    sa.Column("thread_id", sa.String(), nullable=True),
    sa.Column("run_id", sa.String(), nullable=True),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("outline", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("section_notes", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("sources", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("sections", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("pending_runs", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("final_html", sa.Text(), nullable=True),
    sa.Column("meta_title", sa.Text(), nullable=True),
    sa.Column("meta_description", sa.Text(), nullable=True),
    sa.Column("seo", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("error", sa.Text(), nullable=True),
    sa.Column("created_at", sa.String(), server_default=_UTC_NOW_ISO, nullable=False),
    sa.Column("updated_at", sa.String(), server_default=_UTC_NOW_ISO, nullable=False),
    sa.PrimaryKeyConstraint("job_id"),
  )
  op.create_index(op.f("ix_article_jobs_user_id"), "article_jobs", ["user_id"], unique=False)
  op.create_index(op.f("ix_article_jobs_status"), "article_jobs", ["status"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index(op.f("ix_article_jobs_status"), table_name="article_jobs")
  op.drop_index(op.f("ix_article_jobs_user_id"), table_name="article_jobs")
  op.drop_table("article_jobs")
