"""Recover structured values from free-text completion output.

Completion text is not guaranteed to be JSON. Every parse goes through
``parse_structured`` which either returns ``Structured(value)`` or
``Fallback(value)``; a value is always produced, the tag only records how.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

T = TypeVar("T")

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


@dataclass(frozen=True)
class Structured(Generic[T]):
    value: T

    @property
    def is_fallback(self) -> bool:
        return False


@dataclass(frozen=True)
class Fallback(Generic[T]):
    value: T
    raw_text: str
    reason: str

    @property
    def is_fallback(self) -> bool:
        return True


ParseOutcome = Union[Structured[T], Fallback[T]]


def strip_code_fence(text: str) -> str:
    """Return the body of the first fenced block, or the trimmed text."""
    match = _FENCED_BLOCK.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def extract_json_payload(raw_text: str, *, container: str = "{") -> Any:
    """Parse JSON out of model output.

    Tries the fenced/unfenced text as-is, then the outermost ``{...}`` (or
    ``[...]``) window inside it to tolerate leading or trailing prose.
    """
    text = strip_code_fence(raw_text)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        closing = "}" if container == "{" else "]"
        start = text.find(container)
        end = text.rfind(closing)
        if start < 0 or end <= start:
            raise
        return json.loads(text[start : end + 1])


def parse_structured(
    raw_text: str,
    build: Callable[[Any], T],
    fallback: Callable[[str], T],
) -> ParseOutcome[T]:
    """Parse ``raw_text`` with ``build``; on any failure wrap it with ``fallback``."""
    try:
        payload = extract_json_payload(raw_text)
        return Structured(build(payload))
    except (ValueError, TypeError) as exc:
        # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors.
        return Fallback(fallback(raw_text), raw_text=raw_text, reason=str(exc))
