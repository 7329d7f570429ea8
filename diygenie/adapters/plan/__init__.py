"""
Plan providers: local stub and OpenAI.
"""
from .stub import StubPlanProvider
from .openai import OpenAIPlanProvider

__all__ = ["StubPlanProvider", "OpenAIPlanProvider"]
