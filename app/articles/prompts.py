"""Prompt rendering for each article stage."""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path

from app.articles.models import ArticleParameters, OutlineSection, SearchResult

SECTION_MAX_WORDS = 1500


@lru_cache(maxsize=8)
def _load_prompt(name: str) -> str:
  try:
    path = Path(__file__).resolve().parents[1] / "ai" / "prompts" / name
    return path.read_text(encoding="utf-8").strip()
  except (FileNotFoundError, PermissionError, UnicodeDecodeError) as exc:
    raise RuntimeError(f"Failed to load prompt '{name}': {exc}") from exc


def _normalize_optional_text(value: str | None) -> str:
  """Normalize optional fields for prompt rendering."""
  if value is None or value.strip() == "":
    return "-"
  return value.strip()


def _render(template: str, values: dict[str, str]) -> str:
  rendered = template
  for token, value in values.items():
    rendered = rendered.replace("{{" + token + "}}", value)
  return rendered


def _parameter_values(params: ArticleParameters) -> dict[str, str]:
  return {
    "TOPIC": _normalize_optional_text(params.topic),
    "LANGUAGE": _normalize_optional_text(params.language),
    "AUDIENCE": _normalize_optional_text(params.audience),
    "AUTHOR_PERSONA": _normalize_optional_text(params.author_persona),
    "ANGLE": _normalize_optional_text(params.angle),
    "CONTENT_GOAL": _normalize_optional_text(params.content_goal),
    "DESIRED_LENGTH": str(int(params.desired_length)),
    "COMPLEXITY": _normalize_optional_text(params.complexity),
    "CONSTRAINTS": _normalize_optional_text(params.constraints),
  }


def _format_results(results: Sequence[SearchResult]) -> str:
  lines = []
  for position, result in enumerate(results, start=1):
    lines.append(f"{position}. {result.title or result.url}\n   URL: {result.url}\n   {result.snippet}".rstrip())
  return "\n".join(lines)


def render_research_prompt(params: ArticleParameters, results: Sequence[SearchResult]) -> str:
  values = _parameter_values(params)
  values["SEARCH_RESULTS"] = _format_results(results)
  return _render(_load_prompt("article_research.md"), values)


def render_section_prompt(params: ArticleParameters, section: OutlineSection, notes: str | None) -> str:
  values = _parameter_values(params)
  values["SECTION_ID"] = section.section_id
  values["SECTION_TITLE"] = _normalize_optional_text(section.title)
  values["SECTION_DESCRIPTION"] = _normalize_optional_text(section.description)
  values["SECTION_NOTES"] = _normalize_optional_text(notes)
  values["SECTION_WORDS"] = str(SECTION_MAX_WORDS)
  return _render(_load_prompt("article_section.md"), values)


def render_cleanup_prompt(params: ArticleParameters, article_html: str) -> str:
  values = _parameter_values(params)
  values["ARTICLE_HTML"] = article_html
  return _render(_load_prompt("article_cleanup.md"), values)


def render_seo_prompt(params: ArticleParameters, article_html: str) -> str:
  values = _parameter_values(params)
  values["ARTICLE_HTML"] = article_html
  return _render(_load_prompt("article_seo.md"), values)
