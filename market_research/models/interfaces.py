from __future__ import annotations

from typing import Protocol

from market_research.models.research import ResearchMode, ResearchResult, SearchResult


class CompletionService(Protocol):
    async def complete(self, prompt: str, *, caller: str = "pipeline") -> str: ...


class SearchProvider(Protocol):
    name: str

    async def search(self, query: str, *, max_results: int = 10) -> list[SearchResult]: ...


class HistoryStore(Protocol):
    async def record(
        self,
        user_id: str | None,
        question: str,
        mode: ResearchMode,
        result: ResearchResult,
    ) -> None: ...
