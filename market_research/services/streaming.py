from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from market_research.models.events import EventType, PipelineEvent, PipelineStage


def stage_started(stage: PipelineStage, **kwargs: Any) -> PipelineEvent:
    return PipelineEvent(event=EventType.STAGE_STARTED, data={"stage": stage.value, **kwargs})


def stage_completed(stage: PipelineStage, **kwargs: Any) -> PipelineEvent:
    return PipelineEvent(event=EventType.STAGE_COMPLETED, data={"stage": stage.value, **kwargs})


def queries_planned(queries: list[str], *, round_name: str) -> PipelineEvent:
    return PipelineEvent(
        event=EventType.QUERIES_PLANNED,
        data={"round": round_name, "queries": queries, "count": len(queries)},
    )


def search_result(query: str, results: list[dict[str, Any]], *, round_name: str) -> PipelineEvent:
    return PipelineEvent(
        event=EventType.SEARCH_RESULT,
        data={"round": round_name, "query": query, "results": results, "count": len(results)},
    )


def activity(kind: str, message: str, *, status: str = "complete") -> PipelineEvent:
    """Human-readable progress line for the research panel."""
    return PipelineEvent(
        event=EventType.ACTIVITY,
        data={
            "type": kind,
            "status": status,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


def research_complete(
    result: dict[str, Any],
    *,
    runtime_ms: int,
    queries_executed: int,
    findings_fallback: bool,
    report_fallback: bool,
) -> PipelineEvent:
    return PipelineEvent(
        event=EventType.RESEARCH_COMPLETE,
        data={
            "result": result,
            "runtime_ms": runtime_ms,
            "queries_executed": queries_executed,
            "findings_fallback": findings_fallback,
            "report_fallback": report_fallback,
        },
    )


def error(message: str, stage: str | None = None) -> PipelineEvent:
    data: dict[str, Any] = {"message": message}
    if stage:
        data["stage"] = stage
    return PipelineEvent(event=EventType.ERROR, data=data)
