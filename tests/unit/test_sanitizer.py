"""Unit tests for assistant output sanitization."""

from __future__ import annotations

import json

import pytest

from app.articles.sanitizer import CLEANUP_KEYS, SECTION_KEYS, normalize_dashes, sanitize, strip_code_fence, unwrap_payload

SAMPLES = [
  "<h2>Plain</h2><p>Nothing to do here.</p>",
  "```html\n<h2>Fenced</h2>\n<p>Body — with dash</p>\n```",
  "```\n<p>No language tag</p>\n```",
  '{"html": "<p>Wrapped – en dash</p>"}',
  '```json\n{"sectionHtml": "<h2>Nested</h2>"}\n```',
  '{"html": "```html\\n<p>Fence inside JSON</p>\\n```"}',
  "{not json at all — but starts with a brace",
  '{"other": "<p>no candidate key</p>"}',
  "",
  "   \n  ",
]


@pytest.mark.parametrize("raw", SAMPLES)
def test_sanitize_is_idempotent(raw: str) -> None:
  once = sanitize(raw, SECTION_KEYS)
  assert sanitize(once, SECTION_KEYS) == once


@pytest.mark.parametrize("raw", SAMPLES)
def test_sanitize_output_has_no_long_dashes(raw: str) -> None:
  cleaned = sanitize(raw, SECTION_KEYS)
  assert "—" not in cleaned
  assert "–" not in cleaned


def test_sanitize_returns_plain_text_unchanged() -> None:
  text = "  <p>Already clean text, with spacing.</p>\n"
  assert sanitize(text) == text


def test_sanitize_strips_fence_with_language_tag() -> None:
  assert sanitize("```html\n<h2>Title</h2>\n<p>Body</p>\n```") == "<h2>Title</h2>\n<p>Body</p>"


def test_strip_code_fence_handles_only_trailing_marker() -> None:
  assert strip_code_fence("<p>Body</p>\n```") == "<p>Body</p>"


def test_strip_code_fence_leaves_inline_backticks() -> None:
  text = "<p>Use ```code``` inline</p>"
  assert strip_code_fence(text) == text


def test_unwrap_payload_uses_first_present_key_in_order() -> None:
  payload = json.dumps({"sectionHtml": "<p>second</p>", "html": "<p>first</p>"})
  assert unwrap_payload(payload, SECTION_KEYS) == "<p>first</p>"


def test_unwrap_payload_skips_empty_candidates() -> None:
  payload = json.dumps({"html": "  ", "cleanHtmlSection": "<p>clean</p>"})
  assert unwrap_payload(payload, CLEANUP_KEYS) == "<p>clean</p>"


def test_unwrap_payload_keeps_text_when_json_is_invalid() -> None:
  text = '{"html": "<p>unterminated'
  assert unwrap_payload(text, SECTION_KEYS) == text


def test_unwrap_payload_keeps_text_without_candidate_key() -> None:
  text = '{"other": "value"}'
  assert unwrap_payload(text, SECTION_KEYS) == text


def test_sanitize_unwraps_fenced_json_envelope() -> None:
  raw = '```json\n{"html": "<h2>Intro</h2><p>Fast — and clean</p>"}\n```'
  assert sanitize(raw, SECTION_KEYS) == "<h2>Intro</h2><p>Fast - and clean</p>"


def test_cleanup_keys_accept_final_html() -> None:
  raw = json.dumps({"finalHtml": "<article>done</article>"})
  assert sanitize(raw, CLEANUP_KEYS) == "<article>done</article>"


def test_normalize_dashes_replaces_em_and_en_dash() -> None:
  assert normalize_dashes("a — b – c - d") == "a - b - c - d"


def test_sanitize_never_raises_on_none() -> None:
  assert sanitize(None) == ""
