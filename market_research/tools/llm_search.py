from __future__ import annotations

import json

from pydantic import ValidationError

from market_research.errors import MalformedSearchResponse
from market_research.models.interfaces import CompletionService
from market_research.models.research import SearchResult
from market_research.services.prompt_store import render_prompt
from market_research.services.structured_output import extract_json_payload

RECORD_FIELDS = ("title", "link", "snippet", "source")


def parse_result_records(text: str, *, max_results: int) -> list[SearchResult]:
    """Turn a model-written JSON array into search results."""
    try:
        payload = extract_json_payload(text, container="[")
    except json.JSONDecodeError as exc:
        raise MalformedSearchResponse(f"No JSON array in search response: {exc}") from exc

    if not isinstance(payload, list):
        raise MalformedSearchResponse("Search response is not a JSON array")

    records = [item for item in payload if isinstance(item, dict)]
    if payload and not records:
        raise MalformedSearchResponse("Search response array holds no result objects")

    try:
        return [
            SearchResult(**{key: record.get(key) for key in RECORD_FIELDS})
            for record in records[:max_results]
        ]
    except ValidationError as exc:
        raise MalformedSearchResponse(f"Search result record has the wrong field types: {exc}") from exc


class LLMSearchProvider:
    """Search backed by the completion service, asked to answer with result records."""

    name = "llm"

    def __init__(self, completion: CompletionService):
        self.completion = completion

    async def search(self, query: str, *, max_results: int = 10) -> list[SearchResult]:
        text = await self.completion.complete(
            render_prompt("search.llm_results", query=query, max_results=max_results),
            caller="search",
        )
        return parse_result_records(text, max_results=max_results)
