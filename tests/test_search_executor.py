from __future__ import annotations

import asyncio

import pytest

from market_research.errors import MalformedSearchResponse, ResearchCancelled
from market_research.models.research import SearchResult
from market_research.services.cancellation import CancellationToken
from market_research.services.search_executor import ProcessedQuerySet, SearchExecutor
from market_research.tools.llm_search import LLMSearchProvider
from research_doubles import RecordingSearchProvider, ScriptedCompletion


class MalformedProvider:
    name = "malformed"

    async def search(self, query: str, *, max_results: int = 10):
        raise MalformedSearchResponse("not a list")


class HangingProvider:
    name = "hanging"

    async def search(self, query: str, *, max_results: int = 10):
        await asyncio.sleep(5)
        return []


def test_processed_query_set_dedupes_on_normalized_key():
    processed = ProcessedQuerySet(["Salary Cape Town"])

    assert "salary   cape town" in processed
    assert processed.add("SALARY CAPE TOWN") is False
    assert processed.add("   ") is False
    assert processed.add("devops Durban") is True
    assert list(processed) == ["Salary Cape Town", "devops Durban"]


def test_claim_respects_limit_and_skips_seen():
    processed = ProcessedQuerySet(["a"])

    claimed = processed.claim(["A", "b", "c", "b", "d"], limit=2)

    assert claimed == ["b", "c"]
    assert len(processed) == 3
    assert "d" not in processed


@pytest.mark.asyncio
async def test_execute_returns_provider_results():
    executor = SearchExecutor(RecordingSearchProvider(results_per_query=3), max_results=2)

    results = await executor.execute("nurses Durban")

    assert [r.title for r in results] == ["nurses Durban #0", "nurses Durban #1"]


@pytest.mark.asyncio
async def test_execute_returns_placeholder_for_malformed_response():
    results = await SearchExecutor(MalformedProvider()).execute("actuaries Sandton")

    assert len(results) == 1
    assert results[0].title == "Search results for: actuaries Sandton"
    assert results[0].snippet == "Search completed successfully. Results will be analyzed."


@pytest.mark.asyncio
async def test_execute_returns_empty_on_failure():
    provider = RecordingSearchProvider(failures=("bad",))
    assert await SearchExecutor(provider).execute("bad") == []


@pytest.mark.asyncio
async def test_execute_returns_empty_on_timeout():
    executor = SearchExecutor(HangingProvider(), timeout_seconds=0.01)
    assert await executor.execute("slow") == []


@pytest.mark.asyncio
async def test_execute_batch_preserves_submission_order():
    provider = RecordingSearchProvider(
        results_per_query=1,
        delays={"first": 0.05, "second": 0.02, "third": 0.0},
    )
    executor = SearchExecutor(provider, max_parallel=3)

    batches = await executor.execute_batch(["first", "second", "third"])

    assert [batch[0].title for batch in batches] == ["first #0", "second #0", "third #0"]


@pytest.mark.asyncio
async def test_execute_batch_bounds_parallelism():
    in_flight = 0
    peak = 0

    class CountingProvider:
        name = "counting"

        async def search(self, query: str, *, max_results: int = 10):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return []

    executor = SearchExecutor(CountingProvider(), max_parallel=2)
    await executor.execute_batch([f"q{i}" for i in range(6)])

    assert peak == 2


@pytest.mark.asyncio
async def test_execute_batch_stops_when_cancelled():
    token = CancellationToken()
    token.cancel()
    provider = RecordingSearchProvider()

    with pytest.raises(ResearchCancelled):
        await SearchExecutor(provider).execute_batch(["q1", "q2"], cancel_token=token)

    assert provider.queries == []


class ShapelessProvider:
    name = "shapeless"

    def __init__(self, answers: dict):
        self.answers = answers

    async def search(self, query: str, *, max_results: int = 10):
        return self.answers.get(query)


@pytest.mark.asyncio
async def test_execute_returns_placeholder_when_provider_answers_none():
    results = await SearchExecutor(ShapelessProvider({})).execute("dev salary")

    assert results == [SearchResult.placeholder("dev salary")]


@pytest.mark.asyncio
async def test_execute_coerces_record_dicts():
    provider = ShapelessProvider({"q": [{"title": "PNet", "link": "https://pnet.co.za"}]})

    [result] = await SearchExecutor(provider).execute("q")

    assert result.title == "PNet"
    assert result.source == "Unknown Source"


@pytest.mark.asyncio
async def test_execute_returns_placeholder_for_unreadable_records():
    provider = ShapelessProvider({"q": ["just a string"], "r": [{"title": ["a", "b"]}]})
    executor = SearchExecutor(provider)

    assert await executor.execute("q") == [SearchResult.placeholder("q")]
    assert await executor.execute("r") == [SearchResult.placeholder("r")]


@pytest.mark.asyncio
async def test_llm_records_with_wrong_field_types_become_placeholder():
    completion = ScriptedCompletion({"search": '[{"title": ["a", "b"], "link": "x"}]'})
    executor = SearchExecutor(LLMSearchProvider(completion))

    assert await executor.execute("dev salary") == [SearchResult.placeholder("dev salary")]
