"""
Stub plan provider.

Produces a small, deterministic plan (and design ideas) without calling an LLM.
Used when no OpenAI key is configured and as the fallback when the LLM fails.
"""
import asyncio
import logging
from typing import Any, Optional

from ..base import PlanProvider, ProviderMode

logger = logging.getLogger(__name__)

SUGGESTIONS_BY_ROOM = {
    "kitchen": [
        ("Open shelving", "Swap two upper cabinets for floating oak shelves."),
        ("Tile backsplash", "Run subway tile from counter to cabinet underside."),
        ("Under-cabinet lighting", "Add LED strips on a single switched circuit."),
    ],
    "bathroom": [
        ("Vanity refresh", "Paint the vanity and replace the hardware."),
        ("Framed mirror", "Build a simple mitred frame around the existing mirror."),
        ("Floating shelf", "Add a shelf above the toilet for storage."),
    ],
    "bedroom": [
        ("Accent wall", "Board-and-batten on the headboard wall."),
        ("Built-in nightstands", "Wall-mounted boxes on either side of the bed."),
        ("Reading lights", "Plug-in sconces with cord covers."),
    ],
}

DEFAULT_SUGGESTIONS = [
    ("Fresh paint", "Repaint walls and trim in a lighter neutral."),
    ("Statement lighting", "Replace the ceiling fixture with a pendant."),
    ("Simple shelving", "Install two floating shelves on hidden brackets."),
]


class StubPlanProvider(PlanProvider):
    """Deterministic local plan generator."""

    def __init__(self, delay_seconds: float = 2.0):
        self.delay_seconds = delay_seconds

    @property
    def name(self) -> str:
        return "stub"

    @property
    def mode(self) -> ProviderMode:
        return ProviderMode.STUB

    async def generate_plan(
        self,
        description: str,
        budget: Optional[str] = None,
        skill_level: Optional[str] = None,
    ) -> dict[str, Any]:
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)
        title = (description or "DIY project").strip()[:120] or "DIY project"
        skill = skill_level or "beginner"
        logger.info(f"[PLAN] Stub plan generated for '{title}'")
        return {
            "overview": {
                "title": title,
                "est_time": "1 weekend",
                "est_cost": budget or "under $200",
                "skill": skill,
                "notes": "Generated offline; review measurements before cutting.",
            },
            "materials": [
                {"name": "1x4 pine boards", "qty": 4},
                {"name": "Wood screws (1-1/4\")", "qty": "1 box"},
                {"name": "Wood glue", "qty": 1},
                {"name": "Paint or stain", "qty": "1 quart"},
            ],
            "tools": [
                {"name": "Tape measure"},
                {"name": "Circular saw"},
                {"name": "Drill/driver"},
                {"name": "Sander"},
            ],
            "cuts": [
                {"item": "1x4 pine", "size": "36 in", "qty": 4},
                {"item": "1x4 pine", "size": "10 in", "qty": 4},
            ],
            "steps": [
                {"order": 1, "text": "Measure the space and confirm dimensions."},
                {"order": 2, "text": "Cut boards to length following the cut list."},
                {"order": 3, "text": "Dry-fit, then glue and screw the frame together."},
                {"order": 4, "text": "Sand all surfaces smooth."},
                {"order": 5, "text": "Apply finish and let it cure before install."},
            ],
        }

    async def suggest_designs(
        self,
        room_type: Optional[str] = None,
        goal: Optional[str] = None,
        budget: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        ideas = SUGGESTIONS_BY_ROOM.get((room_type or "").strip().lower(), DEFAULT_SUGGESTIONS)
        return [{"title": title, "description": description} for title, description in ideas]
