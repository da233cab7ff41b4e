from __future__ import annotations

import asyncio

from loguru import logger

from market_research.agents.base import BaseAgent
from market_research.models.research import Findings
from market_research.services.prompt_store import render_prompt
from market_research.services.structured_output import Fallback, ParseOutcome, parse_structured


class FindingsAnalyzer(BaseAgent):
    """Phase 1: extract annotated findings from the aggregated content.

    Never raises. A failed call or unreadable output produces
    ``Findings.fallback`` so compilation always has something to work from.
    """

    name = "findings_analyzer"

    async def analyze(self, question: str, content: str) -> ParseOutcome[Findings]:
        prompt = render_prompt(
            "findings.research",
            question=question,
            content=content or "No search content was collected.",
        )
        try:
            text = await self._complete(prompt)
        except asyncio.TimeoutError:
            reason = f"findings analysis timed out after {self.timeout_seconds}s"
            logger.warning(reason)
            return Fallback(Findings.fallback(""), raw_text="", reason=reason)
        except Exception as exc:
            logger.warning(f"Findings analysis call failed: {exc}")
            return Fallback(Findings.fallback(""), raw_text="", reason=str(exc))

        outcome = parse_structured(text, Findings.model_validate, Findings.fallback)
        if outcome.is_fallback:
            logger.warning(f"Could not parse research findings, using fallback: {outcome.reason}")
        return outcome
