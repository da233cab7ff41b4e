from __future__ import annotations

import pytest
from pydantic import ValidationError

from market_research.models.research import (
    NO_ANALYSIS_TEXT,
    Findings,
    ResearchMode,
    ResearchRequest,
    Reliability,
    SearchResult,
    limits_for,
)


def test_mode_limits():
    quick = limits_for("quick")
    full = limits_for(ResearchMode.FULL)

    assert (quick.query_cap, quick.source_cap) == (12, 5)
    assert (full.query_cap, full.source_cap) == (30, 25)
    assert quick.requested_queries == "8-12"
    assert full.report_words == "4000-6000"


def test_request_trims_and_rejects_blank_question():
    assert ResearchRequest(question="  nurses Durban ").question == "nurses Durban"
    with pytest.raises(ValidationError):
        ResearchRequest(question="   ")


def test_unknown_mode_is_rejected():
    with pytest.raises(ValidationError):
        ResearchRequest(question="q", mode="deep")


def test_search_result_fills_blank_fields_with_placeholders():
    result = SearchResult(title="", link=None, snippet="  ", source=None)

    assert result.title == "Unknown Title"
    assert result.link == "#"
    assert result.snippet == "No description available"
    assert result.source == "Unknown Source"


def test_search_result_placeholder_carries_query():
    result = SearchResult.placeholder("devops Cape Town")

    assert result.title == "Search results for: devops Cape Town"
    assert result.link == "#"
    assert result.source == "search"


def test_findings_accept_string_items_and_legacy_keys():
    findings = Findings.model_validate(
        {
            "keyFindings": [
                "Demand is growing",
                {"finding": "Salaries up 8%", "reliability": "HIGH", "southAfricaRelevance": "Local"},
                {"finding": "Unverified claim", "reliability": "unknown"},
            ],
            "saContextFactors": ["B-BBEE requirements"],
            "dataGaps": "Few senior samples",
        }
    )

    assert findings.key_findings[0].finding == "Demand is growing"
    assert findings.key_findings[0].reliability is Reliability.MEDIUM
    assert findings.key_findings[1].reliability is Reliability.HIGH
    assert findings.key_findings[1].contextual_relevance == "Local"
    assert findings.key_findings[2].reliability is Reliability.MEDIUM
    assert findings.context_factors == ("B-BBEE requirements",)
    assert findings.data_gaps == ("Few senior samples",)
    assert findings.confidence_level == "Medium"


def test_findings_fallback_shape():
    findings = Findings.fallback("")

    [finding] = findings.key_findings
    assert finding.finding == NO_ANALYSIS_TEXT
    assert finding.source == "Analysis"
    assert finding.implications == "Requires further analysis"
    assert findings.data_gaps == ("Complete data analysis required",)
    assert findings.context_factors == ("General market conditions",)


def test_findings_serialize_with_camel_case_aliases():
    payload = Findings.fallback("raw").model_dump(by_alias=True)

    assert set(payload) == {
        "keyFindings",
        "dataGaps",
        "contradictions",
        "contextFactors",
        "confidenceLevel",
    }
    assert payload["keyFindings"][0]["contextualRelevance"] == "General"
