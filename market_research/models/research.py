from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

DEFAULT_SUMMARY = "Research analysis completed. Please see the detailed report below."
NO_ANALYSIS_TEXT = "No analysis output was returned for the collected content."


class ResearchMode(str, Enum):
    QUICK = "quick"
    FULL = "full"


@dataclass(frozen=True, slots=True)
class ModeLimits:
    """Cardinality caps and presentation labels for one research mode.

    ``analysis_time`` and ``confidence_score`` are fixed labels shown to the
    user, not measurements of the run.
    """

    query_cap: int
    requested_queries: str
    source_cap: int
    report_words: str
    analysis_time: str
    confidence_score: str


MODE_LIMITS: dict[ResearchMode, ModeLimits] = {
    ResearchMode.QUICK: ModeLimits(
        query_cap=12,
        requested_queries="8-12",
        source_cap=5,
        report_words="2000-3000",
        analysis_time="1-2 minutes",
        confidence_score="75%",
    ),
    ResearchMode.FULL: ModeLimits(
        query_cap=30,
        requested_queries="20-30",
        source_cap=25,
        report_words="4000-6000",
        analysis_time="3-5 minutes",
        confidence_score="90%",
    ),
}

FOLLOW_UP_QUERY_CAP = 10
FOLLOW_UP_PREVIEW_RESULTS = 15


def limits_for(mode: ResearchMode | str) -> ModeLimits:
    return MODE_LIMITS[ResearchMode(mode)]


class ResearchRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str
    mode: ResearchMode = ResearchMode.QUICK

    @field_validator("question")
    @classmethod
    def _require_question(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("question must not be empty")
        return value

    @property
    def limits(self) -> ModeLimits:
        return MODE_LIMITS[self.mode]


class SearchResult(BaseModel):
    """One normalized search hit. Every field falls back to placeholder text."""

    model_config = ConfigDict(frozen=True)

    title: str = "Unknown Title"
    link: str = "#"
    snippet: str = "No description available"
    source: str = "Unknown Source"

    @field_validator("title", "link", "snippet", "source", mode="before")
    @classmethod
    def _default_blank(cls, value: Any, info) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.model_fields[info.field_name].default
        if isinstance(value, (int, float)):
            return str(value)
        return value.strip() if isinstance(value, str) else value

    @classmethod
    def placeholder(cls, query: str) -> SearchResult:
        return cls(
            title=f"Search results for: {query}",
            link="#",
            snippet="Search completed successfully. Results will be analyzed.",
            source="search",
        )


class Reliability(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return "; ".join(str(item).strip() for item in value if str(item).strip())
    return str(value).strip()


def _coerce_text_list(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ValueError("expected a list of strings")
    return tuple(text for text in (_coerce_text(item) for item in value) if text)


class KeyFinding(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    finding: str
    source: str = "Analysis"
    reliability: Reliability = Reliability.MEDIUM
    contextual_relevance: str = Field(
        default="",
        alias="contextualRelevance",
        validation_alias=AliasChoices(
            "contextualRelevance", "southAfricaRelevance", "contextual_relevance"
        ),
    )
    implications: str = ""
    questions: str = ""

    @field_validator("finding", "source", "contextual_relevance", "implications", "questions", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _coerce_text(value)

    @field_validator("reliability", mode="before")
    @classmethod
    def _reliability(cls, value: Any) -> str:
        normalized = _coerce_text(value).lower()
        if normalized in {r.value for r in Reliability}:
            return normalized
        return Reliability.MEDIUM.value


class Findings(BaseModel):
    """Phase-1 structured intermediate extracted from aggregated content."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key_findings: tuple[KeyFinding, ...] = Field(default=(), alias="keyFindings")
    data_gaps: tuple[str, ...] = Field(default=(), alias="dataGaps")
    contradictions: tuple[str, ...] = ()
    context_factors: tuple[str, ...] = Field(
        default=(),
        alias="contextFactors",
        validation_alias=AliasChoices("contextFactors", "saContextFactors", "context_factors"),
    )
    confidence_level: str = Field(default="Medium", alias="confidenceLevel")

    @field_validator("key_findings", mode="before")
    @classmethod
    def _findings(cls, value: Any) -> Any:
        if value is None:
            return ()
        if not isinstance(value, (list, tuple)):
            raise ValueError("keyFindings must be a list")
        return tuple(
            item if isinstance(item, (dict, KeyFinding)) else {"finding": item} for item in value
        )

    @field_validator("data_gaps", "contradictions", "context_factors", mode="before")
    @classmethod
    def _text_lists(cls, value: Any) -> tuple[str, ...]:
        return _coerce_text_list(value)

    @field_validator("confidence_level", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> str:
        return _coerce_text(value) or "Medium"

    @classmethod
    def fallback(cls, raw_text: str) -> Findings:
        """Best-effort findings that keep the raw model text as the only finding."""
        return cls(
            key_findings=(
                KeyFinding(
                    finding=raw_text.strip() or NO_ANALYSIS_TEXT,
                    source="Analysis",
                    reliability=Reliability.MEDIUM,
                    contextual_relevance="General",
                    implications="Requires further analysis",
                    questions="Data structure needs review",
                ),
            ),
            data_gaps=("Complete data analysis required",),
            contradictions=(),
            context_factors=("General market conditions",),
            confidence_level="Medium",
        )


class CompiledReport(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    summary: str = DEFAULT_SUMMARY
    full_report: str = Field(alias="fullReport")

    @field_validator("summary", mode="before")
    @classmethod
    def _summary(cls, value: Any) -> str:
        return _coerce_text(value) or DEFAULT_SUMMARY

    @field_validator("full_report")
    @classmethod
    def _full_report(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("fullReport must not be empty")
        return value

    @classmethod
    def fallback(cls, raw_text: str) -> CompiledReport:
        """Wrap raw completion text verbatim in a minimal report shell."""
        body = raw_text.strip().replace("\n", "</p><p>")
        return cls(
            summary=DEFAULT_SUMMARY,
            full_report=f'<div class="prose"><h2>Research Analysis</h2><p>{body}</p></div>',
        )


class Source(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    description: str
    domain: str
    date: str


class ResearchResult(BaseModel):
    """Final payload handed to the caller and the history store."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    summary: str
    full_report: str = Field(alias="fullReport")
    sources: tuple[Source, ...] = ()
    data_points: int = Field(alias="dataPoints")
    analysis_time: str = Field(alias="analysisTime")
    confidence_score: str = Field(alias="confidenceScore")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
