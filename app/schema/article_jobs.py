from __future__ import annotations

from sqlalchemy import Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base

_UTC_NOW_ISO = text("""to_char((now() AT TIME ZONE 'UTC'), 'YYYY-MM-DD"T"HH24:MI:SS"Z"')""")


class ArticleJob(Base):
  __tablename__ = "article_jobs"

  job_id: Mapped[str] = mapped_column(String, primary_key=True)
  user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  topic: Mapped[str] = mapped_column(Text, nullable=False)
  language: Mapped[str] = mapped_column(String, nullable=False)
  audience: Mapped[str] = mapped_column(String, nullable=False)
  author_persona: Mapped[str] = mapped_column(String, nullable=False)
  angle: Mapped[str] = mapped_column(String, nullable=False)
  content_goal: Mapped[str] = mapped_column(String, nullable=False)
  desired_length: Mapped[int] = mapped_column(Integer, nullable=False)
  complexity: Mapped[str] = mapped_column(String, nullable=False)
  constraints: Mapped[str | None] = mapped_column(Text, nullable=True)
  thread_id: Mapped[str | None] = mapped_column(String, nullable=True)
  run_id: Mapped[str | None] = mapped_column(String, nullable=True)
  status: Mapped[str] = mapped_column(String, nullable=False, index=True)
  outline: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  section_notes: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
  sources: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
  sections: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
  pending_runs: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
  final_html: Mapped[str | None] = mapped_column(Text, nullable=True)
  meta_title: Mapped[str | None] = mapped_column(Text, nullable=True)
  meta_description: Mapped[str | None] = mapped_column(Text, nullable=True)
  seo: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  error: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[str] = mapped_column(String, nullable=False, server_default=_UTC_NOW_ISO)
  updated_at: Mapped[str] = mapped_column(String, nullable=False, server_default=_UTC_NOW_ISO)
