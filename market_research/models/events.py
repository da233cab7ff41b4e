from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    STAGE_STARTED = "stage_started"
    STAGE_COMPLETED = "stage_completed"
    QUERIES_PLANNED = "queries_planned"
    SEARCH_RESULT = "search_result"
    ACTIVITY = "activity"
    RESEARCH_COMPLETE = "research_complete"
    ERROR = "error"


class PipelineStage(str, Enum):
    PLANNING = "planning"
    SEARCHING = "searching"
    FOLLOW_UP_PLANNING = "follow_up_planning"
    FOLLOW_UP_SEARCHING = "follow_up_searching"
    AGGREGATING = "aggregating"
    ANALYZING = "analyzing"
    COMPILING = "compiling"
    STRUCTURING = "structuring"
    PERSISTING = "persisting"
    DONE = "done"


@dataclass
class PipelineEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    def format(self) -> str:
        return f"event: {self.event.value}\ndata: {json.dumps(self.data)}\n\n"
