"""
OpenAI plan provider.

Calls the Chat Completions API in JSON mode and returns the parsed object. The
caller normalizes whatever shape comes back.
"""
import json
import logging
from typing import Any, Optional

import httpx

from diygenie.utils.json_utils import extract_json_object

from ..base import PlanProvider, ProviderMode
from ..errors import ProviderConfigError, ProviderError, ProviderTimeoutError

logger = logging.getLogger(__name__)

PLAN_SYSTEM_PROMPT = (
    "You are a meticulous DIY carpenter and home-improvement planner. "
    "Respond with a single JSON object with keys: overview (title, est_time, est_cost, skill, notes), "
    "materials (name, qty, notes), tools (name), cuts (item, size, qty), steps (order, text). "
    "Keep steps concrete and ordered."
)

SUGGEST_SYSTEM_PROMPT = (
    "You suggest practical DIY design ideas. Respond with a JSON object "
    '{"suggestions": [{"title": ..., "description": ...}]} containing 3 to 5 ideas.'
)


class OpenAIPlanProvider(PlanProvider):
    """
    Adapter for OpenAI chat completions.

    Example:
        provider = OpenAIPlanProvider(api_key="sk-...", model="gpt-4o-mini")
        plan = await provider.generate_plan("Floating shelves over the desk", "$100", "beginner")
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ProviderConfigError("openai_api_key is required for the OpenAI plan provider")
        self.model = model
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout_seconds,
            transport=transport,
        )

    @property
    def name(self) -> str:
        return "openai"

    @property
    def mode(self) -> ProviderMode:
        return ProviderMode.LIVE

    async def _complete_json(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        payload = {
            "model": self.model,
            "response_format": {"type": "json_object"},
            "temperature": 0.4,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        try:
            resp = await self._http.post("/chat/completions", json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError("OpenAI request timed out") from e
        except httpx.HTTPStatusError as e:
            raise ProviderError(f"OpenAI returned {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(f"OpenAI request failed: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError("OpenAI response missing choices[0].message.content") from e

        parsed = extract_json_object(content or "")
        if parsed is None:
            raise ProviderError("OpenAI response did not contain a JSON object")
        usage = data.get("usage") or {}
        logger.info(f"[PLAN] OpenAI completion model={self.model} tokens={usage.get('total_tokens', 0)}")
        return parsed

    async def generate_plan(
        self,
        description: str,
        budget: Optional[str] = None,
        skill_level: Optional[str] = None,
    ) -> dict[str, Any]:
        user_prompt = json.dumps({
            "project": description,
            "budget": budget,
            "skill_level": skill_level or "beginner",
        })
        return await self._complete_json(PLAN_SYSTEM_PROMPT, user_prompt)

    async def suggest_designs(
        self,
        room_type: Optional[str] = None,
        goal: Optional[str] = None,
        budget: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        user_prompt = json.dumps({"room_type": room_type, "goal": goal, "budget": budget})
        data = await self._complete_json(SUGGEST_SYSTEM_PROMPT, user_prompt)
        suggestions = data.get("suggestions")
        if not isinstance(suggestions, list):
            raise ProviderError("OpenAI suggestions payload missing 'suggestions' list")
        return [
            {"title": str(s.get("title", "")).strip(), "description": str(s.get("description", "")).strip()}
            for s in suggestions
            if isinstance(s, dict) and s.get("title")
        ]

    async def aclose(self) -> None:
        await self._http.aclose()
