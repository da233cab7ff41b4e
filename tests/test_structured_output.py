from __future__ import annotations

import json

import pytest

from market_research.models.research import DEFAULT_SUMMARY, CompiledReport, Findings
from market_research.services.structured_output import (
    Fallback,
    Structured,
    extract_json_payload,
    parse_structured,
    strip_code_fence,
)


def test_strip_code_fence_returns_fenced_body():
    text = 'Here you go:\n```json\n{"a": 1}\n```\nThanks'
    assert strip_code_fence(text) == '{"a": 1}'


def test_strip_code_fence_accepts_unlabelled_fence():
    assert strip_code_fence('```\n[1, 2]\n```') == "[1, 2]"


def test_extract_json_payload_tolerates_surrounding_prose():
    text = 'Sure! {"summary": "s", "fullReport": "<p>r</p>"} Hope this helps.'
    assert extract_json_payload(text) == {"summary": "s", "fullReport": "<p>r</p>"}


def test_extract_json_payload_finds_arrays():
    assert extract_json_payload('Results:\n[{"title": "x"}]\n', container="[") == [{"title": "x"}]


def test_extract_json_payload_raises_without_json():
    with pytest.raises(json.JSONDecodeError):
        extract_json_payload("no structure at all")


def test_parse_structured_returns_structured_for_fenced_json():
    raw = '```json\n{"summary": "Strong demand", "fullReport": "<h2>Overview</h2>"}\n```'
    outcome = parse_structured(raw, CompiledReport.model_validate, CompiledReport.fallback)

    assert isinstance(outcome, Structured)
    assert outcome.is_fallback is False
    assert outcome.value.summary == "Strong demand"


def test_parse_structured_wraps_prose_in_fallback():
    raw = "The market is hot.\nSalaries are rising."
    outcome = parse_structured(raw, CompiledReport.model_validate, CompiledReport.fallback)

    assert isinstance(outcome, Fallback)
    assert outcome.raw_text == raw
    assert outcome.value.summary == DEFAULT_SUMMARY
    assert outcome.value.full_report == (
        '<div class="prose"><h2>Research Analysis</h2>'
        "<p>The market is hot.</p><p>Salaries are rising.</p></div>"
    )


def test_parse_structured_falls_back_when_shape_is_wrong():
    outcome = parse_structured('{"keyFindings": "oops"}', Findings.model_validate, Findings.fallback)

    assert outcome.is_fallback
    assert outcome.value.key_findings[0].finding == '{"keyFindings": "oops"}'


def test_report_without_full_report_is_a_fallback():
    outcome = parse_structured('{"summary": "only"}', CompiledReport.model_validate, CompiledReport.fallback)

    assert outcome.is_fallback
    assert "only" in outcome.value.full_report


def test_report_missing_summary_uses_generic_line():
    outcome = parse_structured('{"fullReport": "<p>body</p>"}', CompiledReport.model_validate, CompiledReport.fallback)

    assert not outcome.is_fallback
    assert outcome.value.summary == DEFAULT_SUMMARY
