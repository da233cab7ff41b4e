from __future__ import annotations

import json

from market_research.models.events import EventType, PipelineStage
from market_research.services import streaming


def test_event_format_is_an_sse_frame():
    event = streaming.stage_started(PipelineStage.SEARCHING, queries=3)

    frame = event.format()

    assert frame.startswith("event: stage_started\ndata: ")
    assert frame.endswith("\n\n")
    assert json.loads(frame.split("data: ", 1)[1]) == {"stage": "searching", "queries": 3}


def test_activity_event_has_timestamp_and_status():
    event = streaming.activity("search", "Searching for: nurses", status="pending")

    assert event.event == EventType.ACTIVITY
    assert event.data["type"] == "search"
    assert event.data["status"] == "pending"
    assert event.data["timestamp"]


def test_error_event_only_names_stage_when_known():
    assert streaming.error("boom").data == {"message": "boom"}
    assert streaming.error("boom", stage="compiling").data["stage"] == "compiling"
