from __future__ import annotations

from market_research.models.research import ResearchMode, SearchResult, limits_for


def render_result(result: SearchResult) -> str:
    return f"{result.title}\n{result.snippet}\nSource: {result.source}\n\n"


def aggregate(results: list[SearchResult], mode: ResearchMode) -> str:
    """Concatenate the first ``source_cap`` results in arrival order.

    Results are not re-ranked: queries are already planner-ordered by
    importance, so arrival order stands in for relevance.
    """
    max_sources = limits_for(mode).source_cap
    return "".join(render_result(result) for result in results[:max_sources])
