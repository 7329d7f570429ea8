"""
Design suggestions, memoized in the application's TTL cache.
"""
import logging
from typing import Any, Optional

from diygenie.services.dispatch import ProviderDispatch
from diygenie.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


def _norm(value: Optional[str]) -> str:
    return " ".join((value or "").lower().split())


class DesignSuggestionService:
    def __init__(self, dispatch: ProviderDispatch, cache: TTLCache):
        self.dispatch = dispatch
        self.cache = cache

    async def suggest(
        self,
        room_type: Optional[str] = None,
        goal: Optional[str] = None,
        budget: Optional[str] = None,
    ) -> tuple[list[dict[str, Any]], bool]:
        """Return (suggestions, served_from_cache)."""
        key = (_norm(room_type), _norm(goal), _norm(budget))
        cached = self.cache.get(key)
        if cached is not None:
            return cached, True

        suggestions = await self.dispatch.suggest_designs(room_type, goal, budget)
        self.cache.set(key, suggestions)
        logger.debug(f"[PLAN] Cached {len(suggestions)} suggestions for {key}")
        return suggestions, False
