"""Prompt catalog backed by ``prompts/prompts.json``.

Entries are ``string.Template`` sources, either one string or a list of
lines. The market context (region, locations, currency) is merged into every
render so prompts never hard-code a country.
"""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from string import Template
from typing import Any

from market_research.config import settings


PROMPTS_PATH = Path(__file__).resolve().parents[1] / "prompts" / "prompts.json"


@lru_cache(maxsize=4)
def _catalog_at(path: str, mtime_ns: int) -> dict[str, Any]:
    catalog = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(catalog, dict):
        raise ValueError("Prompt catalog must be a JSON object.")
    return catalog


def load_catalog() -> dict[str, Any]:
    # Keyed on mtime so edits to the catalog are picked up without a restart.
    return _catalog_at(str(PROMPTS_PATH), PROMPTS_PATH.stat().st_mtime_ns)


def prompt_source(key: str) -> str:
    entry: Any = load_catalog()
    for part in key.split("."):
        if not isinstance(entry, dict) or part not in entry:
            raise KeyError(f"Prompt key not found: {key}")
        entry = entry[part]
    if isinstance(entry, list) and all(isinstance(line, str) for line in entry):
        entry = "\n".join(entry)
    if not isinstance(entry, str):
        raise TypeError(f"Prompt '{key}' must be a string or a list of lines")
    return entry


def market_context() -> dict[str, str]:
    locations = settings.market_location_list
    return {
        "region": settings.research_market_region,
        "locations": ", ".join(locations) if locations else settings.research_market_region,
        "currency": settings.research_market_currency,
    }


def render_prompt(key: str, **values: Any) -> str:
    template = Template(prompt_source(key))
    try:
        return template.substitute(market_context(), **values)
    except KeyError as exc:
        raise KeyError(f"Prompt '{key}' needs a value for '{exc.args[0]}'") from exc
