"""
API Schemas for Projects.

A project follows one home-improvement job from a room photo through an
optional AI preview, a build plan and step-by-step progress.
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Request Models
# ============================================================================

class ProjectCreate(BaseModel):
    """Request to create a new project."""
    name: str = Field(..., max_length=255, description="Project name (min length enforced server-side)")
    goal: Optional[str] = Field(None, max_length=4000, description="What the user wants to achieve")
    room_type: Optional[str] = Field(None, max_length=64)
    budget: Optional[str] = Field(None, max_length=64, description="Free-form budget hint, e.g. '$500'")
    skill_level: Optional[str] = Field(None, max_length=32, description="beginner / intermediate / advanced")


class ImageAttach(BaseModel):
    """Attach a room photo by URL."""
    image_url: str = Field(..., max_length=2048)


class PreviewRequest(BaseModel):
    """Options forwarded to the preview provider."""
    prompt: Optional[str] = Field(None, max_length=2000)
    room_type: Optional[str] = Field(None, max_length=64)
    design_style: Optional[str] = Field(None, max_length=64)
    scale_px_per_in: Optional[float] = Field(None, gt=0)
    dimensions: Optional[dict[str, Any]] = None


class PlanRequest(BaseModel):
    """Options forwarded to the plan provider."""
    description: Optional[str] = Field(None, max_length=4000)
    budget: Optional[str] = Field(None, max_length=64)
    skill_level: Optional[str] = Field(None, max_length=32)


class ProgressUpdate(BaseModel):
    """Build progress. Values are coerced and bounds-checked server-side."""
    completed_steps: Optional[list[Any]] = None
    current_step_index: Any = 0


# ============================================================================
# Response Models
# ============================================================================

class ProjectSummary(BaseModel):
    """Project as it appears in lists."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    status: str
    preview_status: Optional[str] = None
    preview_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class ProjectDetail(ProjectSummary):
    """Full project."""
    user_id: str
    goal: Optional[str] = None
    room_type: Optional[str] = None
    budget: Optional[str] = None
    skill_level: Optional[str] = None
    input_image_url: Optional[str] = None
    preview_meta: Optional[dict[str, Any]] = None
    plan_json: Optional[dict[str, Any]] = None
    plan_meta: Optional[dict[str, Any]] = None
    completed_steps: list[int] = Field(default_factory=list)
    current_step_index: int = 0


class ProjectList(BaseModel):
    items: list[ProjectSummary]
    total: int


class OperationAcceptedResponse(BaseModel):
    """Returned with 202 before any provider work has started."""
    accepted: bool = True
    status: str
    operation_id: str


class PreviewState(BaseModel):
    """Polling view of a preview."""
    status: str
    preview_status: Optional[str] = None
    preview_url: Optional[str] = None
    preview_meta: Optional[dict[str, Any]] = None


class PlanState(BaseModel):
    """Polling view of a plan."""
    status: str
    plan: Optional[dict[str, Any]] = None
    plan_meta: Optional[dict[str, Any]] = None
    completed_steps: list[int] = Field(default_factory=list)
    current_step_index: int = 0
