from __future__ import annotations

import asyncio
import time

from market_research.config import settings
from market_research.models.interfaces import CompletionService
from market_research.services import logger as log_service


class BaseAgent:
    """Base for pipeline stages that talk to the completion service.

    Subclasses set ``name`` (also used as the logging caller) and build their
    own prompts; ``_complete`` adds the per-call timeout. What a failed call
    means is decided by each subclass.
    """

    name: str = "base"

    def __init__(
        self,
        completion: CompletionService,
        *,
        timeout_seconds: float | None = None,
    ):
        self.completion = completion
        self.timeout_seconds = float(timeout_seconds or settings.completion_timeout_seconds)

    async def _complete(self, prompt: str) -> str:
        t0 = time.monotonic()
        text = await asyncio.wait_for(
            self.completion.complete(prompt, caller=self.name),
            timeout=self.timeout_seconds,
        )
        log_service.log_event(
            event_type="agent_completion",
            message=f"{self.name} received {len(text or '')} chars",
            agent=self.name,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return text or ""
