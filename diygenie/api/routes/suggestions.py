"""
Design Suggestions API Routes.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from diygenie.api.deps import get_context, get_current_user_id
from diygenie.context import AppContext
from diygenie.services.suggestions import DesignSuggestionService
from ..schemas import DesignSuggestion, SuggestionList

router = APIRouter(prefix="/suggestions", tags=["suggestions"])


@router.get("", response_model=SuggestionList)
async def get_suggestions(
    room_type: Optional[str] = Query(None, max_length=64),
    goal: Optional[str] = Query(None, max_length=500),
    budget: Optional[str] = Query(None, max_length=64),
    user_id: str = Depends(get_current_user_id),
    context: AppContext = Depends(get_context),
) -> SuggestionList:
    service = DesignSuggestionService(context.dispatch, context.suggestions_cache)
    suggestions, cached = await service.suggest(room_type, goal, budget)
    return SuggestionList(
        suggestions=[
            DesignSuggestion(title=str(s.get("title") or "Idea"), description=s.get("description"))
            for s in suggestions
            if isinstance(s, dict)
        ],
        cached=cached,
    )
