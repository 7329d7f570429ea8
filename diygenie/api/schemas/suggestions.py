"""
API Schemas for design suggestions.
"""
from typing import Optional

from pydantic import BaseModel


class DesignSuggestion(BaseModel):
    title: str
    description: Optional[str] = None


class SuggestionList(BaseModel):
    suggestions: list[DesignSuggestion]
    cached: bool = False
