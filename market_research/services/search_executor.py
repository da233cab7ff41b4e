from __future__ import annotations

import asyncio
from typing import Iterable, Iterator

from loguru import logger
from pydantic import ValidationError

from market_research.config import settings
from market_research.errors import MalformedSearchResponse
from market_research.models.interfaces import SearchProvider
from market_research.models.research import SearchResult
from market_research.services.cancellation import CancellationToken


class ProcessedQuerySet:
    """Run-scoped record of issued queries; no query is issued twice."""

    def __init__(self, queries: Iterable[str] = ()) -> None:
        self._keys: set[str] = set()
        self._queries: list[str] = []
        for query in queries:
            self.add(query)

    @staticmethod
    def key(query: str) -> str:
        return " ".join(query.split()).casefold()

    def __contains__(self, query: object) -> bool:
        return isinstance(query, str) and self.key(query) in self._keys

    def __len__(self) -> int:
        return len(self._queries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._queries)

    def add(self, query: str) -> bool:
        key = self.key(query)
        if not key or key in self._keys:
            return False
        self._keys.add(key)
        self._queries.append(" ".join(query.split()))
        return True

    def claim(self, candidates: Iterable[str], *, limit: int) -> list[str]:
        """Register up to ``limit`` unseen candidates and return them in order."""
        claimed: list[str] = []
        for candidate in candidates:
            if len(claimed) >= limit:
                break
            if self.add(candidate):
                claimed.append(" ".join(candidate.split()))
        return claimed


class SearchExecutor:
    """Issue queries against a search provider, degrading instead of raising.

    A failed or timed-out call yields no results. A response that cannot be
    read as result records yields a single placeholder carrying the query,
    so later stages still see that the search happened.
    """

    def __init__(
        self,
        provider: SearchProvider,
        *,
        max_results: int | None = None,
        max_parallel: int | None = None,
        timeout_seconds: float | None = None,
    ):
        self.provider = provider
        self.max_results = max(int(max_results or settings.search_max_results_per_query), 1)
        self.max_parallel = max(int(max_parallel or settings.search_max_parallel_requests), 1)
        self.timeout_seconds = float(timeout_seconds or settings.search_timeout_seconds)

    async def execute(self, query: str) -> list[SearchResult]:
        provider_name = getattr(self.provider, "name", type(self.provider).__name__)
        try:
            results = await asyncio.wait_for(
                self.provider.search(query, max_results=self.max_results),
                timeout=self.timeout_seconds,
            )
        except MalformedSearchResponse as exc:
            logger.warning(f"Unreadable {provider_name} response for {query!r}: {exc}")
            return [SearchResult.placeholder(query)]
        except asyncio.TimeoutError:
            logger.warning(f"{provider_name} search timed out after {self.timeout_seconds}s: {query!r}")
            return []
        except Exception as exc:
            logger.warning(f"{provider_name} search failed for {query!r}: {exc}")
            return []

        return self._normalize(query, results, provider_name)

    def _normalize(self, query: str, results: object, provider_name: str) -> list[SearchResult]:
        """Coerce a provider answer into result records, or the placeholder if it has the wrong shape."""
        if not isinstance(results, (list, tuple)):
            logger.warning(
                f"{provider_name} returned {type(results).__name__} instead of a result list for {query!r}"
            )
            return [SearchResult.placeholder(query)]
        try:
            return [
                item if isinstance(item, SearchResult) else SearchResult.model_validate(item)
                for item in results[: self.max_results]
            ]
        except (ValidationError, TypeError) as exc:
            logger.warning(f"Unreadable {provider_name} result records for {query!r}: {exc}")
            return [SearchResult.placeholder(query)]

    async def execute_batch(
        self,
        queries: list[str],
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[list[SearchResult]]:
        """Run queries with bounded parallelism; output follows submission order."""
        semaphore = asyncio.Semaphore(self.max_parallel)

        async def run_one(query: str) -> list[SearchResult]:
            async with semaphore:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled("search")
                return await self.execute(query)

        outcomes = await asyncio.gather(
            *(run_one(query) for query in queries),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        return outcomes
