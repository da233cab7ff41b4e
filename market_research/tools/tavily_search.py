from __future__ import annotations

from tavily import AsyncTavilyClient

from market_research.config import settings
from market_research.errors import MalformedSearchResponse
from market_research.models.research import SearchResult
from market_research.tools import web_utils


async def search(
    query: str,
    *,
    max_results: int = 10,
    search_depth: str = "advanced",
) -> list[SearchResult]:
    """Run a Tavily search and map the hits onto ``SearchResult``."""
    if not settings.tavily_api_key:
        raise RuntimeError("TAVILY_API_KEY is not configured")

    client = AsyncTavilyClient(api_key=settings.tavily_api_key)
    response = await client.search(
        query=query,
        search_depth=search_depth,
        max_results=max_results,
        topic="general",
    )

    hits = response.get("results") if isinstance(response, dict) else None
    if not isinstance(hits, list):
        raise MalformedSearchResponse("Tavily response has no results list")

    results: list[SearchResult] = []
    for hit in hits:
        if not isinstance(hit, dict):
            continue
        url = hit.get("url") or ""
        results.append(
            SearchResult(
                title=hit.get("title"),
                link=url,
                snippet=hit.get("content"),
                source=web_utils.extract_domain(url),
            )
        )
    return results[:max_results]
