import asyncio
import json

import httpx
import pytest

from conftest import groq_reply, mock_http_client, unreachable_handler
from moe.ai_entry import AIEntryGenerator, normalize_ai_entry, parse_model_json, strip_code_fences
from moe.fallback_words import generate_fallback
from moe.groq_client import GroqClient
from moe.groq_monitor import QuotaMonitor

VOLCANO = {
    "word": "Volcano",
    "pronunciation": "vol-ca-no",
    "definition": "A mountain with a hole that lets out hot melted rock, ash and gas.",
    "simpleDefinition": "A mountain that can erupt with hot lava.",
    "example": "The volcano erupted and lava flowed down its sides.",
    "memoryTip": "Think of a VOLume of lava going up and out!",
    "relatedWords": ["lava", "eruption", "magma"],
    "difficulty": "medium",
}


def _generator(handler, api_key="test_key", timeout=5.0) -> AIEntryGenerator:
    groq = GroqClient(api_key=api_key, http_client=mock_http_client(handler), monitor=QuotaMonitor())
    return AIEntryGenerator(groq, timeout=timeout)


@pytest.mark.unit
def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


@pytest.mark.unit
def test_parse_model_json_with_prose():
    assert parse_model_json('Sure! Here it is: {"word": "cat"} Hope that helps.') == {"word": "cat"}
    assert parse_model_json("not json at all") is None
    assert parse_model_json('["a", "b"]') is None


@pytest.mark.unit
def test_generate_parses_fenced_json():
    content = f"```json\n{json.dumps(VOLCANO)}\n```"
    details = asyncio.run(_generator(groq_reply(content)).generate("volcano"))
    assert details.word == "volcano"
    assert details.pronunciation == "vol-ca-no"
    assert details.related_words == ["lava", "eruption", "magma"]
    assert details.memory_tip == VOLCANO["memoryTip"]
    assert details.audio_url is None


@pytest.mark.unit
def test_generate_sends_json_prompt():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["authorization"]
        captured["body"] = json.loads(request.content)
        return groq_reply(json.dumps(VOLCANO))(request)

    asyncio.run(_generator(handler).generate("volcano"))
    assert captured["auth"] == "Bearer test_key"
    body = captured["body"]
    assert body["response_format"] == {"type": "json_object"}
    prompt = body["messages"][-1]["content"]
    assert '"volcano"' in prompt
    assert '"easy", "medium", "advanced"' in prompt


@pytest.mark.unit
def test_generate_without_api_key_uses_fallback():
    def handler(request):
        raise AssertionError("Groq must not be called without an API key")

    details = asyncio.run(_generator(handler, api_key=None).generate("volcano"))
    assert details == generate_fallback("volcano")


@pytest.mark.unit
def test_generate_network_error_uses_fallback():
    details = asyncio.run(_generator(unreachable_handler).generate("volcano"))
    assert details == generate_fallback("volcano")


@pytest.mark.unit
def test_generate_http_error_uses_fallback():
    details = asyncio.run(_generator(groq_reply("", status_code=500)).generate("volcano"))
    assert details == generate_fallback("volcano")


@pytest.mark.unit
def test_generate_unparsable_output_uses_fallback():
    details = asyncio.run(_generator(groq_reply("I don't know that word, sorry!")).generate("volcano"))
    assert details == generate_fallback("volcano")


@pytest.mark.unit
def test_generate_timeout_uses_fallback():
    async def slow(request):
        await asyncio.sleep(1)
        return groq_reply(json.dumps(VOLCANO))(request)

    details = asyncio.run(_generator(slow, timeout=0.05).generate("volcano"))
    assert details == generate_fallback("volcano")


@pytest.mark.unit
def test_normalize_backfills_missing_fields():
    details = normalize_ai_entry("adventure", {
        "definition": "An exciting or unusual experience.",
        "relatedWords": "journey",
        "difficulty": "super hard",
    })
    assert details.word == "adventure"
    assert details.difficulty == "advanced"
    assert details.related_words == ["definition", "study", "explain", "share"]
    assert details.simple_definition == "An exciting or unusual experience."
    assert details.example == "I used the word adventure when I talked about school today."
    assert details.memory_tip.startswith('Remember: "adventure"')


@pytest.mark.unit
def test_normalize_clamps_related_words_and_long_definition():
    details = normalize_ai_entry("big", {
        "word": "BIG",
        "definition": "Large in size.",
        "simpleDefinition": "x" * 300,
        "relatedWords": ["large", "", 7, "huge", "giant", "vast", "great", "bulky", "hefty"],
        "difficulty": "EASY",
    })
    assert details.word == "big"
    assert details.difficulty == "easy"
    assert details.related_words == ["large", "huge", "giant", "vast", "great", "bulky"]
    assert len(details.simple_definition) == 140
    assert details.simple_definition.endswith("...")
