from __future__ import annotations

from datetime import date

from market_research.models.research import (
    CompiledReport,
    ResearchMode,
    ResearchResult,
    SearchResult,
    Source,
    limits_for,
)


def to_source(result: SearchResult, *, today: date) -> Source:
    return Source(
        title=result.title,
        url=result.link,
        description=result.snippet,
        domain=result.source,
        date=today.isoformat(),
    )


def structure(
    report: CompiledReport,
    results: list[SearchResult],
    mode: ResearchMode,
    *,
    today: date | None = None,
) -> ResearchResult:
    """Assemble the final payload. Deterministic apart from ``today``.

    ``analysisTime`` and ``confidenceScore`` are the mode's presentation
    labels, not measured values.
    """
    limits = limits_for(mode)
    day = today or date.today()
    sources = tuple(to_source(result, today=day) for result in results)
    return ResearchResult(
        summary=report.summary,
        full_report=report.full_report,
        sources=sources,
        data_points=len(sources),
        analysis_time=limits.analysis_time,
        confidence_score=limits.confidence_score,
    )
