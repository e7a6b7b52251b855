"""
Tests for the AI narrator: JSON extraction, prompts and keyless fallbacks.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError

from adapters.ai_narrator import (
    AINarrator,
    _extract_json_object,
    _is_local_base_url,
    build_transaction_prompt,
    heuristic_transaction_narrative,
    parse_transaction_payload,
)
from core.config import AppSettings
from core.domain.models import CoinMetadata, EnrichedBundle, TransactionNarrative
from tests.conftest import RECEIVER, SENDER, USDC, make_transaction


def _bundle() -> EnrichedBundle:
    return EnrichedBundle(
        transaction=make_transaction(),
        coin_metadata={USDC: CoinMetadata(id=USDC, name="USD Coin", symbol="USDC", decimals=6)},
        names={SENDER: "alice.sui", RECEIVER: None},
    )


def _settings(**overrides) -> AppSettings:
    values = {"ai_api_key": None, "ai_base_url": "https://api.example.com/v1", "ai_max_retries": 0}
    values.update(overrides)
    return AppSettings(**values)


def _fake_openai(*contents: str) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        side_effect=[
            SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=c))]) for c in contents
        ]
    )
    return client


def test_extract_json_from_fenced_block():
    text = 'Sure!\n```json\n{"summary": "ok"}\n```\nanything else?'
    assert _extract_json_object(text) == '{"summary": "ok"}'


def test_extract_json_from_surrounding_prose():
    assert _extract_json_object('Here you go: {"a": 1} bye') == '{"a": 1}'


def test_extract_json_without_object_raises():
    with pytest.raises(ValueError):
        _extract_json_object("no json at all")


def test_local_base_url_detection():
    assert _is_local_base_url("http://localhost:11434/v1")
    assert _is_local_base_url("http://127.0.0.1:8000")
    assert not _is_local_base_url("https://api.openai.com/v1")


def test_transaction_prompt_carries_names_tokens_and_brands():
    prompt = build_transaction_prompt(_bundle())

    assert f'- {SENDER} is "alice.sui"' in prompt
    assert RECEIVER not in prompt.split("SUINS NAMES", 1)[1].split("Return a detailed")[0]
    assert "USDC (decimals: 6)" in prompt
    assert "DeepBook" in prompt
    assert "technicalPlayByPlay" in prompt


def test_heuristic_narrative_uses_resolved_data():
    narrative = heuristic_transaction_narrative(_bundle(), reason="missing_ai_api_key")

    assert "alice.sui" in narrative.summary
    assert "-0.9" in narrative.technical_play_by_play
    assert "USDC" in narrative.technical_play_by_play
    assert "0.002021880" not in narrative.technical_play_by_play
    assert "0.00202188 SUI" in narrative.technical_play_by_play


@pytest.mark.asyncio
async def test_without_key_transaction_falls_back_to_heuristic():
    narrator = AINarrator(settings=_settings())

    narrative = await narrator.explain_transaction(_bundle())

    assert isinstance(narrative, TransactionNarrative)
    assert "missing_ai_api_key" in narrative.technical_play_by_play


@pytest.mark.asyncio
async def test_without_key_package_lists_module_count():
    narrator = AINarrator(settings=_settings())

    narrative = await narrator.explain_package("0x2", {"coin": {}, "transfer": {}})

    assert "2 module(s)" in narrative.summary
    assert narrative.modules == ["coin", "transfer"]


@pytest.mark.asyncio
async def test_provider_json_is_parsed_into_narrative():
    client = _fake_openai(
        '{"summary": "alice.sui sent 0.9 USDC", "technicalPlayByPlay": "First, ...",'
        ' "mermaidCode": "graph LR; A-->B;", "protocol": "Sui Framework", "actionType": "Transfer",'
        f' "involvedParties": [{{"address": "{SENDER}", "role": "Sender"}}]}}'
    )
    narrator = AINarrator(settings=_settings(ai_api_key="k"), client=client)

    narrative = await narrator.explain_transaction(_bundle())

    assert narrative.summary == "alice.sui sent 0.9 USDC"
    assert narrative.action_type == "Transfer"
    assert narrative.involved_parties[0].address == SENDER


@pytest.mark.asyncio
async def test_invalid_json_asks_model_to_correct_itself(monkeypatch):
    monkeypatch.setattr("adapters.ai_narrator.asyncio.sleep", AsyncMock())
    client = _fake_openai(
        "definitely not json",
        '{"summary": "ok", "technicalPlayByPlay": "First, ok."}',
    )
    narrator = AINarrator(settings=_settings(ai_api_key="k", ai_max_retries=1), client=client)

    narrative = await narrator.explain_transaction(_bundle())

    assert narrative.summary == "ok"
    second_call = client.chat.completions.create.await_args_list[1]
    assert "not valid JSON" in second_call.kwargs["messages"][-1]["content"]


@pytest.mark.asyncio
async def test_exhausted_retries_raise_for_the_pipeline_fallback():
    client = _fake_openai("nope")
    narrator = AINarrator(settings=_settings(ai_api_key="k"), client=client)

    with pytest.raises(ValueError):
        await narrator.explain_transaction(_bundle())


@pytest.mark.asyncio
async def test_missing_required_text_raises():
    client = _fake_openai('{"summary": "only a summary", "technicalPlayByPlay": "  "}')
    narrator = AINarrator(settings=_settings(ai_api_key="k"), client=client)

    with pytest.raises(ValidationError):
        await narrator.explain_transaction(_bundle())


@pytest.mark.asyncio
async def test_malformed_optional_fields_keep_the_narrative():
    client = _fake_openai(
        '{"summary": "alice.sui sent 0.9 USDC", "technicalPlayByPlay": "First, ...",'
        ' "protocol": 42, "actionType": ["Transfer"], "mermaidCode": "",'
        ' "involvedParties": [{"role": "Protocol", "label": "Cetus"}, "0xabc",'
        f' {{"address": "{RECEIVER}", "role": "Receiver"}}]}}'
    )
    narrator = AINarrator(settings=_settings(ai_api_key="k"), client=client)

    narrative = await narrator.explain_transaction(_bundle())

    assert narrative.summary == "alice.sui sent 0.9 USDC"
    assert narrative.protocol is None
    assert narrative.action_type is None
    assert narrative.mermaid_code is None
    assert [p.address for p in narrative.involved_parties] == [RECEIVER]


def test_parse_payload_without_parties():
    narrative = parse_transaction_payload({"summary": "s", "technicalPlayByPlay": "p", "involvedParties": None})

    assert narrative.involved_parties == []


@pytest.mark.asyncio
async def test_package_response_defaults_capabilities():
    client = _fake_openai('{"summary": "Coin utilities."}')
    narrator = AINarrator(settings=_settings(ai_api_key="k"), client=client)

    narrative = await narrator.explain_package("0x2", {"coin": {}})

    assert narrative.summary == "Coin utilities."
    assert narrative.modules == ["coin"]
    assert narrative.capabilities == ["App Logic"]
