from __future__ import annotations

from loguru import logger

from market_research.config import settings
from market_research.models.interfaces import CompletionService, SearchProvider
from market_research.models.research import SearchResult
from market_research.tools import brave_search, tavily_search
from market_research.tools.llm_search import LLMSearchProvider


class TavilySearchProvider:
    name = "tavily"

    async def search(self, query: str, *, max_results: int = 10) -> list[SearchResult]:
        return await tavily_search.search(query=query, max_results=max_results)


class BraveSearchProvider:
    """Brave web search, optionally falling back to Tavily on errors or zero hits."""

    name = "brave"

    def __init__(self, *, fallback_to_tavily: bool = False):
        self.fallback_to_tavily = fallback_to_tavily

    async def search(self, query: str, *, max_results: int = 10) -> list[SearchResult]:
        try:
            results = await brave_search.search(query=query, max_results=max_results)
        except Exception as exc:
            if not self.fallback_to_tavily:
                raise
            logger.warning(f"Brave search failed for {query!r}, using Tavily: {exc}")
            return await tavily_search.search(query=query, max_results=max_results)

        if results or not self.fallback_to_tavily:
            return results

        logger.info(f"Brave returned zero results for {query!r}, using Tavily")
        return await tavily_search.search(query=query, max_results=max_results)


def get_search_provider(completion: CompletionService) -> SearchProvider:
    provider = settings.search_provider.lower().strip()

    if provider == "llm":
        return LLMSearchProvider(completion)
    if provider == "tavily":
        return TavilySearchProvider()
    if provider == "brave":
        return BraveSearchProvider(fallback_to_tavily=settings.search_fallback_to_tavily)

    raise ValueError(f"Unsupported SEARCH_PROVIDER: {settings.search_provider}")
