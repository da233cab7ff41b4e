from __future__ import annotations

import asyncio
import time
from typing import AsyncGenerator
from uuid import uuid4

from loguru import logger

from market_research.agents.findings_analyzer import FindingsAnalyzer
from market_research.agents.query_planner import FollowUpPlanner, QueryPlanner
from market_research.agents.report_compiler import ReportCompiler
from market_research.config import settings
from market_research.errors import ResearchError
from market_research.llm_client import OpenRouterCompletionService
from market_research.models.events import EventType, PipelineEvent, PipelineStage
from market_research.models.interfaces import CompletionService, HistoryStore, SearchProvider
from market_research.models.research import (
    FOLLOW_UP_QUERY_CAP,
    ResearchMode,
    ResearchRequest,
    ResearchResult,
    SearchResult,
)
from market_research.services import logger as log_service
from market_research.services import streaming
from market_research.services.cancellation import CancellationToken
from market_research.services.content_aggregator import aggregate
from market_research.services.history import get_history_store
from market_research.services.result_structurer import structure
from market_research.services.search_executor import ProcessedQuerySet, SearchExecutor
from market_research.tools.search_provider import get_search_provider


class ResearchPipeline:
    """Runs one market research request end to end.

    Flow:
      1. Plan the initial queries (fatal on failure)
      2. Search them with bounded fan-out
      3. Full mode only: plan and search one follow-up round
      4. Aggregate the first N results into one content block
      5. Phase 1: extract findings (degrades to a fallback)
      6. Phase 2: compile the report (fatal if the call fails)
      7. Structure the final payload and hand it to the history store

    All steps yield events so a UI can follow progress. The total number of
    queries issued in a run never exceeds the mode's query cap.
    """

    def __init__(
        self,
        completion: CompletionService | None = None,
        search_provider: SearchProvider | None = None,
        history_store: HistoryStore | None = None,
        *,
        search_executor: SearchExecutor | None = None,
        completion_timeout_seconds: float | None = None,
        history_timeout_seconds: float | None = None,
    ):
        self.completion = completion or OpenRouterCompletionService()
        self.search_provider = search_provider or get_search_provider(self.completion)
        self.history_store = history_store if history_store is not None else get_history_store()
        self.search_executor = search_executor or SearchExecutor(self.search_provider)
        self.history_timeout_seconds = float(
            history_timeout_seconds or settings.history_timeout_seconds
        )
        self.planner = QueryPlanner(self.completion, timeout_seconds=completion_timeout_seconds)
        self.follow_up_planner = FollowUpPlanner(
            self.completion, timeout_seconds=completion_timeout_seconds
        )
        self.analyzer = FindingsAnalyzer(self.completion, timeout_seconds=completion_timeout_seconds)
        self.compiler = ReportCompiler(self.completion, timeout_seconds=completion_timeout_seconds)

    async def _search_round(
        self,
        queries: list[str],
        *,
        round_name: str,
        cancel_token: CancellationToken,
    ) -> tuple[list[SearchResult], list[PipelineEvent]]:
        """Search a batch and flatten the results in query order."""
        events: list[PipelineEvent] = []
        batches = await self.search_executor.execute_batch(queries, cancel_token=cancel_token)
        results: list[SearchResult] = []
        for query, batch in zip(queries, batches):
            results.extend(batch)
            events.append(
                streaming.search_result(
                    query,
                    [item.model_dump() for item in batch],
                    round_name=round_name,
                )
            )
            events.append(
                streaming.activity("search", f"Found {len(batch)} results for: {query}")
            )
        return results, events

    async def _persist(
        self,
        run_id: str,
        user_id: str | None,
        request: ResearchRequest,
        result: ResearchResult,
    ) -> bool:
        """Best-effort history write. Never raises."""
        if self.history_store is None:
            return False
        try:
            await asyncio.wait_for(
                self.history_store.record(user_id, request.question, request.mode, result),
                timeout=self.history_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"[{run_id}] History write timed out after {self.history_timeout_seconds}s"
            )
            return False
        except Exception as exc:
            logger.warning(f"[{run_id}] Failed to save research to history: {exc}")
            return False
        return True

    async def research(
        self,
        request: ResearchRequest,
        *,
        user_id: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncGenerator[PipelineEvent, None]:
        """Execute the pipeline, yielding events throughout."""
        token = cancel_token or CancellationToken()
        limits = request.limits
        run_id = uuid4().hex[:12]
        processed = ProcessedQuerySet()
        collected: list[SearchResult] = []
        started_at = time.monotonic()
        logger.info(f"[{run_id}] Research started ({request.mode.value}): {request.question}")

        try:
            # Planning
            token.raise_if_cancelled(PipelineStage.PLANNING.value)
            yield streaming.stage_started(PipelineStage.PLANNING, mode=request.mode.value)
            planned = await self.planner.plan(request.question, request.mode)
            queries = processed.claim(planned, limit=limits.query_cap)
            log_service.log_research_step(
                run_id, PipelineStage.PLANNING.value, "complete", {"queries": len(queries)}
            )
            yield streaming.queries_planned(queries, round_name="initial")
            yield streaming.stage_completed(PipelineStage.PLANNING, queries=len(queries))

            # Searching
            token.raise_if_cancelled(PipelineStage.SEARCHING.value)
            yield streaming.stage_started(PipelineStage.SEARCHING, queries=len(queries))
            results, events = await self._search_round(
                queries, round_name="initial", cancel_token=token
            )
            collected.extend(results)
            for event in events:
                yield event
            log_service.log_research_step(
                run_id, PipelineStage.SEARCHING.value, "complete", {"results": len(results)}
            )
            yield streaming.stage_completed(PipelineStage.SEARCHING, results=len(results))

            # Follow-up round, full mode only
            remaining = limits.query_cap - len(processed)
            if request.mode is ResearchMode.FULL and remaining > 0:
                token.raise_if_cancelled(PipelineStage.FOLLOW_UP_PLANNING.value)
                yield streaming.stage_started(PipelineStage.FOLLOW_UP_PLANNING)
                proposed = await self.follow_up_planner.plan(
                    request.question, collected, list(processed)
                )
                follow_ups = processed.claim(
                    proposed, limit=min(FOLLOW_UP_QUERY_CAP, remaining)
                )
                log_service.log_research_step(
                    run_id,
                    PipelineStage.FOLLOW_UP_PLANNING.value,
                    "complete",
                    {"proposed": len(proposed), "accepted": len(follow_ups)},
                )
                yield streaming.queries_planned(follow_ups, round_name="follow_up")
                yield streaming.stage_completed(
                    PipelineStage.FOLLOW_UP_PLANNING, queries=len(follow_ups)
                )

                if follow_ups:
                    token.raise_if_cancelled(PipelineStage.FOLLOW_UP_SEARCHING.value)
                    yield streaming.stage_started(
                        PipelineStage.FOLLOW_UP_SEARCHING, queries=len(follow_ups)
                    )
                    results, events = await self._search_round(
                        follow_ups, round_name="follow_up", cancel_token=token
                    )
                    collected.extend(results)
                    for event in events:
                        yield event
                    yield streaming.stage_completed(
                        PipelineStage.FOLLOW_UP_SEARCHING, results=len(results)
                    )
                else:
                    yield streaming.activity(
                        "search", "No new follow-up queries; continuing with collected results"
                    )

            # Aggregating
            token.raise_if_cancelled(PipelineStage.AGGREGATING.value)
            yield streaming.stage_started(PipelineStage.AGGREGATING, results=len(collected))
            content = aggregate(collected, request.mode)
            yield streaming.stage_completed(
                PipelineStage.AGGREGATING,
                sources=min(len(collected), limits.source_cap),
                chars=len(content),
            )

            # Phase 1
            token.raise_if_cancelled(PipelineStage.ANALYZING.value)
            yield streaming.stage_started(PipelineStage.ANALYZING)
            yield streaming.activity("analyze", "Analyzing research findings", status="pending")
            findings = await self.analyzer.analyze(request.question, content)
            log_service.log_research_step(
                run_id,
                PipelineStage.ANALYZING.value,
                "degraded" if findings.is_fallback else "complete",
                {"key_findings": len(findings.value.key_findings)},
            )
            yield streaming.stage_completed(
                PipelineStage.ANALYZING,
                key_findings=len(findings.value.key_findings),
                fallback=findings.is_fallback,
            )

            # Phase 2
            token.raise_if_cancelled(PipelineStage.COMPILING.value)
            yield streaming.stage_started(PipelineStage.COMPILING)
            yield streaming.activity("synthesis", "Compiling market research report", status="pending")
            report = await self.compiler.compile(request.question, findings.value, request.mode)
            log_service.log_research_step(
                run_id,
                PipelineStage.COMPILING.value,
                "degraded" if report.is_fallback else "complete",
                {"report_chars": len(report.value.full_report)},
            )
            yield streaming.stage_completed(PipelineStage.COMPILING, fallback=report.is_fallback)
        except ResearchError as exc:
            log_service.log_research_step(run_id, exc.stage, "failed", {"error": str(exc)})
            yield streaming.error(str(exc), stage=exc.stage)
            raise

        # Structuring
        yield streaming.stage_started(PipelineStage.STRUCTURING)
        result = structure(report.value, collected, request.mode)
        yield streaming.stage_completed(PipelineStage.STRUCTURING, data_points=result.data_points)

        # Persisting is best-effort and never fails the run
        if self.history_store is not None:
            yield streaming.stage_started(PipelineStage.PERSISTING)
            saved = await self._persist(run_id, user_id, request, result)
            log_service.log_research_step(
                run_id, PipelineStage.PERSISTING.value, "complete" if saved else "skipped"
            )
            yield streaming.stage_completed(PipelineStage.PERSISTING, saved=saved)

        runtime_ms = int((time.monotonic() - started_at) * 1000)
        logger.info(
            f"[{run_id}] Research complete in {runtime_ms}ms: "
            f"{len(processed)} queries, {result.data_points} sources"
        )
        yield streaming.research_complete(
            result.to_payload(),
            runtime_ms=runtime_ms,
            queries_executed=len(processed),
            findings_fallback=findings.is_fallback,
            report_fallback=report.is_fallback,
        )

    async def run(
        self,
        request: ResearchRequest,
        *,
        user_id: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ResearchResult:
        """Drain ``research`` and return only the final payload."""
        result: ResearchResult | None = None
        async for event in self.research(request, user_id=user_id, cancel_token=cancel_token):
            if event.event == EventType.RESEARCH_COMPLETE:
                result = ResearchResult.model_validate(event.data["result"])
        if result is None:
            raise ResearchError("Research finished without a result", stage=PipelineStage.DONE.value)
        return result


async def run_research(
    question: str,
    mode: ResearchMode | str = ResearchMode.QUICK,
    *,
    user_id: str | None = None,
    pipeline: ResearchPipeline | None = None,
    cancel_token: CancellationToken | None = None,
) -> ResearchResult:
    request = ResearchRequest(question=question, mode=ResearchMode(mode))
    pipeline = pipeline or ResearchPipeline()
    return await pipeline.run(request, user_id=user_id, cancel_token=cancel_token)


def follow_up_question(original_question: str, follow_up: str) -> str:
    return f"{original_question.strip()} {follow_up.strip()}".strip()


async def run_follow_up(
    original_question: str,
    follow_up: str,
    mode: ResearchMode | str = ResearchMode.QUICK,
    *,
    user_id: str | None = None,
    pipeline: ResearchPipeline | None = None,
    cancel_token: CancellationToken | None = None,
) -> ResearchResult:
    """Re-run the whole pipeline on the combined question.

    Nothing from the earlier run is reused.
    """
    return await run_research(
        follow_up_question(original_question, follow_up),
        mode,
        user_id=user_id,
        pipeline=pipeline,
        cancel_token=cancel_token,
    )
