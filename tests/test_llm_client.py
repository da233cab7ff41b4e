from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from market_research.llm_client import (
    MessageResponse,
    OpenRouterCompletionService,
    OpenRouterMessagesAdapter,
    TextBlock,
    Usage,
)


def openai_response(text: str):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=34),
    )


@pytest.mark.asyncio
async def test_messages_adapter_maps_openai_response():
    openai_client = MagicMock()
    openai_client.chat.completions.create = AsyncMock(return_value=openai_response("hello"))
    adapter = OpenRouterMessagesAdapter(openai_client)

    response = await adapter.create(
        model="google/gemini-2.0-flash-001",
        max_tokens=100,
        system="be brief",
        messages=[{"role": "user", "content": "hi"}],
    )

    assert response.text == "hello"
    assert response.usage.input_tokens == 12
    kwargs = openai_client.chat.completions.create.call_args.kwargs
    assert kwargs["messages"][0] == {"role": "system", "content": "be brief"}
    assert kwargs["max_tokens"] == 100


def test_temperature_is_pinned_for_gpt5_models():
    assert OpenRouterMessagesAdapter._temperature_for_model("openai/gpt-5-mini") == 1


@pytest.mark.asyncio
async def test_completion_service_routes_planner_calls_to_planner_model():
    service = OpenRouterCompletionService("main-model", planner_model="planner-model", max_tokens=50)
    service.client = MagicMock()
    service.client.messages.create = AsyncMock(
        return_value=MessageResponse(content=[TextBlock(type="text", text=" q1\nq2 ")], usage=Usage())
    )

    text = await service.complete("plan this", caller="planner.initial")
    await service.complete("analyze this", caller="findings_analyzer")

    assert text == "q1\nq2"
    models = [call.kwargs["model"] for call in service.client.messages.create.call_args_list]
    assert models == ["planner-model", "main-model"]


@pytest.mark.asyncio
async def test_completion_service_logs_and_reraises_errors():
    service = OpenRouterCompletionService("main-model", planner_model="planner-model")
    service.client = MagicMock()
    service.client.messages.create = AsyncMock(side_effect=RuntimeError("429"))

    with patch("market_research.llm_client.log_service.log_llm_call") as log_call:
        with pytest.raises(RuntimeError):
            await service.complete("x", caller="report_compiler")

    assert log_call.call_args.kwargs["status"] == "error"
    assert log_call.call_args.kwargs["caller"] == "report_compiler"
