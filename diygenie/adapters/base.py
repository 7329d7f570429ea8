"""
Base provider interfaces for preview (image) and plan (LLM) generation.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ProviderMode(str, Enum):
    """Whether results come from a real third-party service or the local stub."""
    LIVE = "live"
    STUB = "stub"


class JobStatus(str, Enum):
    """Status of a remote preview job."""
    QUEUED = "queued"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.DONE, JobStatus.FAILED)


@dataclass
class PreviewJob:
    """Standardized preview job state from any preview provider."""
    job_id: str
    status: JobStatus
    preview_url: Optional[str] = None
    thumb_url: Optional[str] = None
    error_message: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict)


class PreviewProvider(ABC):
    """
    Abstract base class for room-preview generators.

    Providers may finish synchronously (submit returns a DONE job) or hand back
    a job id to be polled.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier."""
        pass

    @property
    @abstractmethod
    def mode(self) -> ProviderMode:
        pass

    @abstractmethod
    async def submit(self, image_url: str, options: dict[str, Any]) -> PreviewJob:
        """
        Start a preview for `image_url`.

        Args:
            image_url: Publicly reachable photo of the room
            options: prompt, room_type, design_style, scale/dimension hints

        Returns:
            PreviewJob, possibly already DONE
        """
        pass

    @abstractmethod
    async def poll(self, job_id: str) -> PreviewJob:
        """Fetch the current state of a previously submitted job."""
        pass

    async def aclose(self) -> None:
        return None


class PlanProvider(ABC):
    """Abstract base class for build-plan generators."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def mode(self) -> ProviderMode:
        pass

    @abstractmethod
    async def generate_plan(
        self,
        description: str,
        budget: Optional[str] = None,
        skill_level: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Produce a loosely-shaped plan document (normalized by the caller).

        Args:
            description: What the user wants to build or change
            budget: Free-form budget hint ("$200", "low")
            skill_level: beginner / intermediate / advanced
        """
        pass

    @abstractmethod
    async def suggest_designs(
        self,
        room_type: Optional[str] = None,
        goal: Optional[str] = None,
        budget: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Short list of design ideas ({"title", "description"})."""
        pass

    async def aclose(self) -> None:
        return None
