from __future__ import annotations

import asyncio
import re

from loguru import logger

from market_research.agents.base import BaseAgent
from market_research.errors import QueryPlanningError
from market_research.models.research import (
    FOLLOW_UP_PREVIEW_RESULTS,
    FOLLOW_UP_QUERY_CAP,
    ResearchMode,
    SearchResult,
    limits_for,
)
from market_research.services.prompt_store import render_prompt

_LIST_MARKER = re.compile(r"^\s*(?:[-*•]+|\d+[.)])\s+")


def parse_query_lines(text: str) -> list[str]:
    """Split a one-query-per-line completion into clean query strings."""
    queries: list[str] = []
    for line in text.splitlines():
        cleaned = _LIST_MARKER.sub("", line).strip()
        if cleaned.startswith("```"):
            continue
        if (
            len(cleaned) >= 2
            and cleaned[0] == cleaned[-1]
            and cleaned[0] in "\"'"
            and cleaned.count(cleaned[0]) == 2
        ):
            cleaned = cleaned[1:-1].strip()
        cleaned = " ".join(cleaned.split())
        if cleaned:
            queries.append(cleaned)
    return queries


class QueryPlanner(BaseAgent):
    """Turn a research question into the initial batch of search queries.

    The prompt asks for the mode's requested range and the result is then
    truncated to the mode's hard cap. Any failure here is fatal for the run.
    """

    name = "planner.initial"

    async def plan(self, question: str, mode: ResearchMode) -> list[str]:
        limits = limits_for(mode)
        prompt = render_prompt(
            "planner.initial",
            question=question,
            requested_count=limits.requested_queries,
        )
        try:
            text = await self._complete(prompt)
        except asyncio.TimeoutError as exc:
            raise QueryPlanningError(
                f"Query planning timed out after {self.timeout_seconds}s"
            ) from exc
        except Exception as exc:
            raise QueryPlanningError(f"Query planning failed: {exc}") from exc

        queries = parse_query_lines(text)[: limits.query_cap]
        if not queries:
            raise QueryPlanningError("Query planning returned no usable queries")
        return queries


class FollowUpPlanner(BaseAgent):
    """Propose a second round of queries from what the first round found."""

    name = "planner.follow_up"

    async def plan(
        self,
        question: str,
        results: list[SearchResult],
        processed_queries: list[str],
    ) -> list[str]:
        preview = results[:FOLLOW_UP_PREVIEW_RESULTS]
        search_content = "\n\n".join(f"{r.title} - {r.snippet}" for r in preview)
        processed = "\n".join(f"- {query}" for query in processed_queries)
        prompt = render_prompt(
            "planner.follow_up",
            question=question,
            search_content=search_content or "No results were found.",
            processed_queries=processed or "- (none)",
            max_queries=FOLLOW_UP_QUERY_CAP,
        )
        try:
            text = await self._complete(prompt)
        except asyncio.TimeoutError:
            logger.warning(f"Follow-up planning timed out after {self.timeout_seconds}s")
            return []
        except Exception as exc:
            logger.warning(f"Follow-up planning failed, continuing without it: {exc}")
            return []

        return parse_query_lines(text)[:FOLLOW_UP_QUERY_CAP]
