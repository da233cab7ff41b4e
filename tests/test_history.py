from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from market_research.models.research import CompiledReport, ResearchMode
from market_research.services import history
from market_research.services.history import (
    InMemoryHistoryStore,
    SupabaseHistoryStore,
    get_history_store,
)
from market_research.services.result_structurer import structure
from research_doubles import make_result

RESULT = structure(
    CompiledReport(summary="s", full_report="<p>r</p>"),
    [make_result("q")],
    ResearchMode.QUICK,
)


@pytest.mark.asyncio
async def test_supabase_store_inserts_history_row():
    supabase_client = MagicMock()
    with patch("market_research.services.history.create_client", return_value=supabase_client) as factory:
        store = SupabaseHistoryStore("https://db.example.co", "anon-key", table="market_research_history")
        await store.record("user-1", "nurses Durban", ResearchMode.FULL, RESULT)

    factory.assert_called_once_with("https://db.example.co", "anon-key")
    supabase_client.table.assert_called_once_with("market_research_history")
    row = supabase_client.table.return_value.insert.call_args.args[0]
    assert row["user_id"] == "user-1"
    assert row["query"] == "nurses Durban"
    assert row["mode"] == "full"
    assert row["results"]["dataPoints"] == 1
    assert row["results"]["fullReport"] == "<p>r</p>"
    assert "created_at" in row
    supabase_client.table.return_value.insert.return_value.execute.assert_called_once()


@pytest.mark.asyncio
async def test_supabase_store_propagates_insert_errors():
    supabase_client = MagicMock()
    supabase_client.table.return_value.insert.return_value.execute.side_effect = RuntimeError("RLS")
    with patch("market_research.services.history.create_client", return_value=supabase_client):
        store = SupabaseHistoryStore("https://db.example.co", "anon-key")

        with pytest.raises(RuntimeError):
            await store.record(None, "q", ResearchMode.QUICK, RESULT)


@pytest.mark.asyncio
async def test_in_memory_store_keeps_rows():
    store = InMemoryHistoryStore()

    await store.record("u", "q", ResearchMode.QUICK, RESULT)

    assert store.rows[0]["results"] == RESULT.to_payload()


def test_history_store_requires_supabase_settings():
    with patch.object(history, "settings") as mock_settings:
        mock_settings.history_configured = False
        assert get_history_store() is None

        mock_settings.history_configured = True
        mock_settings.supabase_url = "https://db.example.co"
        mock_settings.supabase_anon_key = "anon-key"
        mock_settings.history_table = "market_research_history"
        assert isinstance(get_history_store(), SupabaseHistoryStore)
