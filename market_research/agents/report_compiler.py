from __future__ import annotations

import asyncio

from loguru import logger

from market_research.agents.base import BaseAgent
from market_research.errors import CompilationError
from market_research.models.research import CompiledReport, Findings, ResearchMode, limits_for
from market_research.services.prompt_store import render_prompt
from market_research.services.structured_output import ParseOutcome, parse_structured


def serialize_findings(findings: Findings) -> str:
    return findings.model_dump_json(by_alias=True, indent=2)


class ReportCompiler(BaseAgent):
    """Phase 2: compile structured findings into ``{summary, fullReport}``.

    The prompt carries the phase-1 findings, not the raw search content.
    If the call itself fails there is no report to return, so that raises
    ``CompilationError``. Unparsable output is wrapped verbatim instead.
    """

    name = "report_compiler"

    def build_prompt(self, question: str, findings: Findings, mode: ResearchMode) -> str:
        return render_prompt(
            "report.compile",
            question=question,
            findings_json=serialize_findings(findings),
            report_words=limits_for(mode).report_words,
        )

    async def compile(
        self,
        question: str,
        findings: Findings,
        mode: ResearchMode,
    ) -> ParseOutcome[CompiledReport]:
        prompt = self.build_prompt(question, findings, mode)
        try:
            text = await self._complete(prompt)
        except asyncio.TimeoutError as exc:
            raise CompilationError(
                f"Report compilation timed out after {self.timeout_seconds}s"
            ) from exc
        except Exception as exc:
            raise CompilationError(f"AI analysis failed: {exc}") from exc

        outcome = parse_structured(text, CompiledReport.model_validate, CompiledReport.fallback)
        if outcome.is_fallback:
            logger.warning(f"Failed to parse compilation response as JSON: {outcome.reason}")
            logger.debug(f"Raw compilation response: {text[:2000]}")
        return outcome
