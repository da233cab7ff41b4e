from __future__ import annotations

from typing import Any

import httpx

from market_research.config import settings
from market_research.errors import MalformedSearchResponse
from market_research.models.research import SearchResult
from market_research.tools import web_utils

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"


def _to_search_result(item: dict[str, Any]) -> SearchResult:
    url = item.get("url") or ""
    # Brave leaves description empty for some pages but still sends extra snippets.
    snippet = (item.get("description") or "").strip()
    if not snippet:
        snippet = " ".join(item.get("extra_snippets") or []).strip()
    return SearchResult(
        title=item.get("title"),
        link=url,
        snippet=snippet,
        source=web_utils.extract_domain(url),
    )


async def search(query: str, *, max_results: int = 10) -> list[SearchResult]:
    """Run a Brave web search and map the hits onto ``SearchResult``."""
    if not settings.brave_api_key:
        raise RuntimeError("BRAVE_API_KEY is not configured")

    async with httpx.AsyncClient(timeout=settings.search_timeout_seconds) as client:
        response = await client.get(
            BRAVE_SEARCH_URL,
            params={"q": query, "count": max_results},
            headers={
                "Accept": "application/json",
                "X-Subscription-Token": settings.brave_api_key,
            },
        )
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedSearchResponse("Brave response is not JSON") from exc

    web = payload.get("web") if isinstance(payload, dict) else None
    hits = web.get("results") if isinstance(web, dict) else None
    if not isinstance(hits, list):
        raise MalformedSearchResponse("Brave response has no web results list")

    return [_to_search_result(item) for item in hits if isinstance(item, dict)][:max_results]
