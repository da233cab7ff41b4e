from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from supabase import Client, create_client

from market_research.config import settings
from market_research.models.interfaces import HistoryStore
from market_research.models.research import ResearchMode, ResearchResult
from market_research.services import logger as log_service


def build_history_row(
    user_id: str | None,
    question: str,
    mode: ResearchMode,
    result: ResearchResult,
) -> dict[str, Any]:
    return {
        "user_id": user_id,
        "query": question,
        "mode": ResearchMode(mode).value,
        "results": result.to_payload(),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


class SupabaseHistoryStore:
    """Research history kept in a Supabase table."""

    def __init__(
        self,
        url: str | None = None,
        anon_key: str | None = None,
        *,
        table: str | None = None,
    ):
        self.url = url or settings.supabase_url
        self.anon_key = anon_key or settings.supabase_anon_key
        self.table = table or settings.history_table
        self._client: Client | None = None

    def client(self) -> Client:
        if self._client is None:
            self._client = create_client(self.url, self.anon_key)
        return self._client

    async def record(
        self,
        user_id: str | None,
        question: str,
        mode: ResearchMode,
        result: ResearchResult,
    ) -> None:
        row = build_history_row(user_id, question, mode, result)
        query = self.client().table(self.table).insert(row)
        try:
            await asyncio.to_thread(query.execute)
        except Exception as exc:
            log_service.log_db_operation("insert", self.table, "failed", error=str(exc))
            raise
        log_service.log_db_operation(
            "insert",
            self.table,
            "success",
            details=f"user={user_id} mode={row['mode']} sources={result.data_points}",
        )


@dataclass
class InMemoryHistoryStore:
    rows: list[dict[str, Any]] = field(default_factory=list)

    async def record(
        self,
        user_id: str | None,
        question: str,
        mode: ResearchMode,
        result: ResearchResult,
    ) -> None:
        self.rows.append(build_history_row(user_id, question, mode, result))


def get_history_store() -> HistoryStore | None:
    if not settings.history_configured:
        return None
    return SupabaseHistoryStore()
