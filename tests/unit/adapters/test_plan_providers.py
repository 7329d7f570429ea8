"""
Tests for plan providers.
"""
import json

import httpx
import pytest

from diygenie.adapters import (
    OpenAIPlanProvider,
    ProviderConfigError,
    ProviderError,
    ProviderTimeoutError,
    StubPlanProvider,
    get_plan_provider,
)
from diygenie.services.plan_normalizer import normalize_plan
from tests.conftest import make_settings


def _completion(content: str) -> dict:
    return {
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"total_tokens": 321},
    }


def _provider(handler) -> OpenAIPlanProvider:
    return OpenAIPlanProvider(api_key="sk-test", transport=httpx.MockTransport(handler))


class TestStubPlanProvider:
    @pytest.mark.asyncio
    async def test_plan_is_deterministic_and_normalizable(self):
        provider = StubPlanProvider(delay_seconds=0)
        first = await provider.generate_plan("Garden bench", "$120", "beginner")
        second = await provider.generate_plan("Garden bench", "$120", "beginner")
        assert first == second
        plan = normalize_plan(first)
        assert plan["overview"]["title"] == "Garden bench"
        assert plan["overview"]["est_cost"] == "$120"
        assert len(plan["steps"]) == 5

    @pytest.mark.asyncio
    async def test_suggestions_by_room(self):
        provider = StubPlanProvider(delay_seconds=0)
        kitchen = await provider.suggest_designs("Kitchen")
        other = await provider.suggest_designs("attic")
        assert kitchen[0]["title"] == "Open shelving"
        assert other[0]["title"] == "Fresh paint"


class TestOpenAIPlanProvider:
    def test_requires_key(self):
        with pytest.raises(ProviderConfigError):
            OpenAIPlanProvider(api_key="")

    @pytest.mark.asyncio
    async def test_generate_plan_uses_json_mode(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_completion('{"overview": {"title": "Desk"}, "steps": ["Cut"]}'))

        provider = _provider(handler)
        plan = await provider.generate_plan("Standing desk", "$200", "intermediate")
        await provider.aclose()

        assert plan["overview"]["title"] == "Desk"
        assert seen["path"] == "/v1/chat/completions"
        assert seen["body"]["response_format"] == {"type": "json_object"}
        assert seen["body"]["model"] == "gpt-4o-mini"
        assert "Standing desk" in seen["body"]["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_fenced_reply_is_parsed(self):
        reply = 'Here you go:\n```json\n{"steps": [{"order": 1, "text": "Sand"}]}\n```'
        provider = _provider(lambda request: httpx.Response(200, json=_completion(reply)))
        plan = await provider.generate_plan("Refinish table")
        assert plan["steps"][0]["text"] == "Sand"

    @pytest.mark.asyncio
    async def test_non_json_reply_is_an_error(self):
        provider = _provider(lambda request: httpx.Response(200, json=_completion("I cannot help with that.")))
        with pytest.raises(ProviderError):
            await provider.generate_plan("Anything")

    @pytest.mark.asyncio
    async def test_missing_choices_is_an_error(self):
        provider = _provider(lambda request: httpx.Response(200, json={"error": "oops"}))
        with pytest.raises(ProviderError):
            await provider.generate_plan("Anything")

    @pytest.mark.asyncio
    async def test_http_error(self):
        provider = _provider(lambda request: httpx.Response(429, json={"error": "rate limited"}))
        with pytest.raises(ProviderError, match="429"):
            await provider.generate_plan("Anything")

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ConnectTimeout("slow", request=request)

        with pytest.raises(ProviderTimeoutError):
            await _provider(handler).generate_plan("Anything")

    @pytest.mark.asyncio
    async def test_suggest_designs(self):
        content = json.dumps({"suggestions": [
            {"title": "Pegboard wall", "description": "Tool storage"},
            {"description": "no title, dropped"},
        ]})
        provider = _provider(lambda request: httpx.Response(200, json=_completion(content)))
        ideas = await provider.suggest_designs("garage")
        assert ideas == [{"title": "Pegboard wall", "description": "Tool storage"}]


class TestFactory:
    def test_stub_without_key(self, tmp_path):
        assert isinstance(get_plan_provider(make_settings(tmp_path, plan_provider="openai")), StubPlanProvider)

    @pytest.mark.asyncio
    async def test_openai_with_key(self, tmp_path):
        provider = get_plan_provider(make_settings(tmp_path, plan_provider="openai", openai_api_key="sk-x"))
        assert isinstance(provider, OpenAIPlanProvider)
        await provider.aclose()
