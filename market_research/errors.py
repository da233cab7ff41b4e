"""Exceptions raised by the research pipeline."""
from __future__ import annotations


class ResearchError(Exception):
    """Base error for a research run; ``stage`` names where it stopped."""

    def __init__(self, message: str, *, stage: str) -> None:
        super().__init__(message)
        self.stage = stage


class QueryPlanningError(ResearchError):
    """Initial query generation failed or produced no usable query."""

    def __init__(self, message: str) -> None:
        super().__init__(message, stage="planning")


class CompilationError(ResearchError):
    """The report compilation call itself failed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, stage="compiling")


class ResearchCancelled(ResearchError):
    def __init__(self, stage: str) -> None:
        super().__init__(f"Research cancelled before {stage}", stage=stage)


class MalformedSearchResponse(ValueError):
    """A search provider answered, but not with result records."""
