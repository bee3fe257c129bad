"""Parsing of structured assistant payloads (research plan and SEO package)."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.ai.json_parser import parse_json_with_fallback
from app.articles.models import Outline, OutlineSection, ResearchPayload, SearchResult, SeoPackage
from app.articles.sanitizer import sanitize

logger = logging.getLogger(__name__)


class ResearchPayloadError(ValueError):
  """Raised when a structured assistant reply cannot be used."""


def _blank_if_none(value: Any) -> Any:
  return "" if value is None else value


def _objects_only(value: Any) -> Any:
  # Assistants sometimes emit null placeholders inside lists.
  if value is None:
    return []
  if isinstance(value, list):
    return [item for item in value if isinstance(item, dict)]
  return value


class _OutlineSectionModel(BaseModel):
  model_config = ConfigDict(extra="ignore")
  id: str | None = None
  title: str = ""
  description: str = ""

  @field_validator("id", mode="before")
  @classmethod
  def _coerce_id(cls, value: Any) -> str | None:
    if value is None:
      return None
    text = str(value).strip()
    return text or None

  @field_validator("title", "description", mode="before")
  @classmethod
  def _blank_text(cls, value: Any) -> Any:
    return _blank_if_none(value)


class _OutlineModel(BaseModel):
  model_config = ConfigDict(extra="ignore")
  title: str = ""
  sections: list[_OutlineSectionModel] = Field(default_factory=list)

  @field_validator("title", mode="before")
  @classmethod
  def _blank_title(cls, value: Any) -> Any:
    return _blank_if_none(value)

  @field_validator("sections", mode="before")
  @classmethod
  def _drop_placeholders(cls, value: Any) -> Any:
    return _objects_only(value)


class _SourceModel(BaseModel):
  model_config = ConfigDict(extra="ignore")
  url: str = ""
  title: str = ""
  snippet: str = ""

  @field_validator("url", "title", "snippet", mode="before")
  @classmethod
  def _blank_text(cls, value: Any) -> Any:
    return _blank_if_none(value)


class _ResearchModel(BaseModel):
  model_config = ConfigDict(extra="ignore", populate_by_name=True)
  outline: _OutlineModel
  section_notes: dict[str, Any] = Field(default_factory=dict, alias="sectionNotes")
  sources: list[_SourceModel] = Field(default_factory=list)

  @field_validator("section_notes", mode="before")
  @classmethod
  def _notes_default(cls, value: Any) -> Any:
    return {} if value is None else value

  @field_validator("sources", mode="before")
  @classmethod
  def _drop_placeholders(cls, value: Any) -> Any:
    return _objects_only(value)


class _FaqModel(BaseModel):
  model_config = ConfigDict(extra="ignore")
  question: str
  answer: str


class _SeoModel(BaseModel):
  model_config = ConfigDict(extra="ignore")
  meta_title: str = Field(..., min_length=1)
  meta_description: str = ""
  h1: str = ""
  faq: list[_FaqModel] = Field(default_factory=list)
  semantic_topics: list[str] = Field(default_factory=list)


def _load_object(raw: str | None) -> dict[str, Any]:
  text = sanitize(raw, keys=())
  if not text.strip():
    raise ResearchPayloadError("Assistant returned an empty reply.")
  try:
    payload = parse_json_with_fallback(text)
  except json.JSONDecodeError as exc:
    raise ResearchPayloadError(f"Assistant reply is not valid JSON: {exc.msg}") from exc
  if not isinstance(payload, dict):
    raise ResearchPayloadError("Assistant reply must be a JSON object.")
  return payload


def _note_text(value: Any) -> str:
  if isinstance(value, list):
    return "\n".join(str(item) for item in value)
  return str(value)


def parse_research_payload(raw: str | None) -> ResearchPayload:
  """Turn the research reply into an outline, per-section notes and sources."""
  payload = _load_object(raw)
  try:
    model = _ResearchModel.model_validate(payload)
  except ValidationError as exc:
    raise ResearchPayloadError(f"Research reply has an invalid shape: {exc.error_count()} error(s).") from exc

  sections: list[OutlineSection] = []
  seen: set[str] = set()
  for position, item in enumerate(model.outline.sections, start=1):
    section_id = item.id or f"section-{position}"
    # Keep the first occurrence so section ids stay unique keys.
    if section_id in seen:
      logger.warning("Dropping duplicate outline section id=%s", section_id)
      continue
    title = item.title.strip()
    if not title:
      logger.warning("Dropping untitled outline section id=%s", section_id)
      continue
    seen.add(section_id)
    sections.append(OutlineSection(section_id=section_id, title=title, description=item.description.strip()))

  if not sections:
    raise ResearchPayloadError("Research reply has no usable outline sections.")

  notes = {str(key): _note_text(value) for key, value in model.section_notes.items() if value}
  sources = [SearchResult(url=source.url.strip(), title=source.title, snippet=source.snippet) for source in model.sources if source.url.strip()]
  return ResearchPayload(outline=Outline(title=model.outline.title.strip(), sections=tuple(sections)), section_notes=notes, sources=sources)


def parse_seo_payload(raw: str | None) -> SeoPackage:
  """Turn the SEO reply into meta tags, heading, FAQ and semantic topics."""
  payload = _load_object(raw)
  try:
    model = _SeoModel.model_validate(payload)
  except ValidationError as exc:
    raise ResearchPayloadError(f"SEO reply has an invalid shape: {exc.error_count()} error(s).") from exc

  return SeoPackage(
    meta_title=model.meta_title.strip(),
    meta_description=model.meta_description.strip(),
    h1=model.h1.strip(),
    faq=[{"question": item.question, "answer": item.answer} for item in model.faq],
    semantic_topics=[topic for topic in model.semantic_topics if topic.strip()],
  )
