"""
Projects API Routes.

CRUD plus the lifecycle actions: attach image, request/poll/skip preview,
request/poll plan, update build progress.
"""
import logging

from fastapi import APIRouter, Depends, Query, Response, status

from diygenie.api.deps import get_current_user_id, get_lifecycle
from diygenie.infra.db.models import Project
from diygenie.services.lifecycle import OperationAccepted, ProjectLifecycle
from ..schemas import (
    ImageAttach,
    OperationAcceptedResponse,
    PlanRequest,
    PlanState,
    PreviewRequest,
    PreviewState,
    ProgressUpdate,
    ProjectCreate,
    ProjectDetail,
    ProjectList,
    ProjectSummary,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/projects", tags=["projects"])


# ============================================================================
# Helper Functions
# ============================================================================

def _to_summary(project: Project) -> ProjectSummary:
    summary = ProjectSummary.model_validate(project)
    summary.status = project.canonical_status.value
    return summary


def _to_detail(project: Project) -> ProjectDetail:
    detail = ProjectDetail.model_validate(project)
    detail.status = project.canonical_status.value
    detail.completed_steps = list(project.completed_steps or [])
    return detail


def _accepted(result: OperationAccepted) -> OperationAcceptedResponse:
    return OperationAcceptedResponse(
        accepted=True,
        status=result.project.canonical_status.value,
        operation_id=result.operation_id,
    )


# ============================================================================
# Endpoints
# ============================================================================

@router.post("", response_model=ProjectDetail, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    user_id: str = Depends(get_current_user_id),
    lifecycle: ProjectLifecycle = Depends(get_lifecycle),
) -> ProjectDetail:
    """Create a project. Rejected with 403 when the user's quota is used up."""
    project = await lifecycle.create_project(
        user_id,
        data.name,
        goal=data.goal,
        room_type=data.room_type,
        budget=data.budget,
        skill_level=data.skill_level,
    )
    return _to_detail(project)


@router.get("", response_model=ProjectList)
async def list_projects(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    lifecycle: ProjectLifecycle = Depends(get_lifecycle),
) -> ProjectList:
    projects = await lifecycle.list_projects(user_id, limit=limit, offset=offset)
    total = await lifecycle.projects.count_for_user(user_id)
    return ProjectList(items=[_to_summary(p) for p in projects], total=total)


@router.get("/{project_id}", response_model=ProjectDetail)
async def get_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: ProjectLifecycle = Depends(get_lifecycle),
) -> ProjectDetail:
    return _to_detail(await lifecycle.get_project(project_id, user_id))


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: ProjectLifecycle = Depends(get_lifecycle),
) -> Response:
    await lifecycle.delete_project(project_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{project_id}/image", response_model=ProjectDetail)
async def attach_image(
    project_id: str,
    data: ImageAttach,
    user_id: str = Depends(get_current_user_id),
    lifecycle: ProjectLifecycle = Depends(get_lifecycle),
) -> ProjectDetail:
    """Attach the room photo by direct URL."""
    return _to_detail(await lifecycle.attach_image(project_id, user_id, data.image_url))


# ----------------------------------------------------------------------------
# Preview
# ----------------------------------------------------------------------------

@router.post(
    "/{project_id}/preview",
    response_model=OperationAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_preview(
    project_id: str,
    data: PreviewRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    lifecycle: ProjectLifecycle = Depends(get_lifecycle),
) -> OperationAcceptedResponse:
    """
    Start preview generation. Returns immediately; poll
    GET /projects/{id}/preview for the result.
    """
    options = data.model_dump(exclude_none=True) if data else {}
    return _accepted(await lifecycle.request_preview(project_id, user_id, options))


@router.get("/{project_id}/preview", response_model=PreviewState)
async def get_preview(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: ProjectLifecycle = Depends(get_lifecycle),
) -> PreviewState:
    return PreviewState(**await lifecycle.preview_state(project_id, user_id))


@router.post("/{project_id}/preview/skip", response_model=ProjectDetail)
async def skip_preview(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: ProjectLifecycle = Depends(get_lifecycle),
) -> ProjectDetail:
    """Build without a preview."""
    return _to_detail(await lifecycle.skip_preview(project_id, user_id))


# ----------------------------------------------------------------------------
# Plan + progress
# ----------------------------------------------------------------------------

@router.post(
    "/{project_id}/plan",
    response_model=OperationAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_plan(
    project_id: str,
    data: PlanRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    lifecycle: ProjectLifecycle = Depends(get_lifecycle),
) -> OperationAcceptedResponse:
    options = data.model_dump(exclude_none=True) if data else {}
    return _accepted(await lifecycle.request_plan(project_id, user_id, options))


@router.get("/{project_id}/plan", response_model=PlanState)
async def get_plan(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: ProjectLifecycle = Depends(get_lifecycle),
) -> PlanState:
    project = await lifecycle.get_project(project_id, user_id)
    return PlanState(
        status=project.canonical_status.value,
        plan=project.plan_json,
        plan_meta=project.plan_meta,
        completed_steps=list(project.completed_steps or []),
        current_step_index=project.current_step_index or 0,
    )


@router.patch("/{project_id}/progress", response_model=ProjectDetail)
async def update_progress(
    project_id: str,
    data: ProgressUpdate,
    user_id: str = Depends(get_current_user_id),
    lifecycle: ProjectLifecycle = Depends(get_lifecycle),
) -> ProjectDetail:
    project = await lifecycle.update_progress(
        project_id,
        user_id,
        completed_steps=data.completed_steps,
        current_step_index=data.current_step_index,
    )
    return _to_detail(project)
