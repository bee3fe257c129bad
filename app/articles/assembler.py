"""Deterministic reassembly of section artifacts into one document."""

from __future__ import annotations

from collections.abc import Iterable

from app.articles.models import Outline, SectionArtifact

SECTION_SEPARATOR = "\n\n"


def order_sections(sections: Iterable[SectionArtifact], outline: Outline | None) -> list[SectionArtifact]:
  """Keep completed sections with HTML and sort them by outline position.

  Sections whose id is missing from the outline sort after all known ones. The sort is
  stable, so ties keep their stored order.
  """
  usable = [section for section in sections if section.status == "completed" and section.html.strip()]
  if outline is None:
    return usable

  unknown_rank = len(outline.sections)

  def _rank(section: SectionArtifact) -> int:
    index = outline.index_of(section.section_id)
    return unknown_rank if index is None else index

  return sorted(usable, key=_rank)


def assemble_html(sections: Iterable[SectionArtifact], outline: Outline | None) -> str:
  return SECTION_SEPARATOR.join(section.html.strip() for section in order_sections(sections, outline))
