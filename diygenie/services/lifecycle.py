"""
Project lifecycle controller.

Owns every mutation of a Project: creation (quota-gated), image attachment,
preview/plan requests, skipping the preview, progress updates, and the
background completions that the operation runner reports back.

All status changes go through `state_machine.next_status` and are persisted as
a single conditional update on (id, expected status), so two racing requests
cannot both win.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Iterable, Optional, Sequence
from urllib.parse import urlparse

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from diygenie.config import Settings
from diygenie.infra.db.base import utcnow
from diygenie.infra.db.models import (
    OperationKind,
    OperationStatus,
    PendingOperation,
    PreviewStatus,
    Project,
    ProjectStatus,
)
from diygenie.infra.db.repositories import PendingOperationRepository, ProjectRepository
from diygenie.services.dispatch import PlanOutcome, PreviewOutcome
from diygenie.services.entitlements import Entitlement, EntitlementResolver
from diygenie.services.errors import (
    Conflict,
    NotFound,
    PermissionDenied,
    StorageFailure,
    ValidationFailed,
)
from diygenie.services.plan_normalizer import normalize_plan
from diygenie.services.state_machine import ProjectEvent, can_transition, next_status

logger = logging.getLogger(__name__)

Scheduler = Callable[[str], Any]

IN_FLIGHT_PREVIEW_STATUSES = (PreviewStatus.QUEUED.value, PreviewStatus.PROCESSING.value)


@dataclass
class OperationAccepted:
    """Returned by request_preview / request_plan before any provider work runs."""
    project: Project
    operation_id: str

    @property
    def status(self) -> str:
        return self.project.status


def _quota_exhausted(entitlement: Entitlement) -> PermissionDenied:
    return PermissionDenied(
        f"Project quota reached ({entitlement.used}/{entitlement.quota}) "
        f"for the {entitlement.tier.value} tier",
        error="quota_exhausted",
    )


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _validate_image_url(image_url: Optional[str]) -> str:
    url = (image_url or "").strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationFailed("image_url must be an http(s) URL", error="invalid_image_url")
    return url


def _coerce_index(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationFailed(f"{field_name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{field_name} must be an integer") from None
    if isinstance(value, float) and value != number:
        raise ValidationFailed(f"{field_name} must be an integer")
    return number


class ProjectLifecycle:
    """
    Service object bound to one DB session.

    `scheduler` is called with a pending operation id once that operation has
    been committed; the HTTP layer wires it to `OperationRunner.schedule`.
    """

    def __init__(self, session: AsyncSession, settings: Settings, scheduler: Optional[Scheduler] = None):
        self.session = session
        self.settings = settings
        self.scheduler = scheduler
        self.projects = ProjectRepository(session)
        self.operations = PendingOperationRepository(session)
        self.entitlements = EntitlementResolver(session, settings)

    @asynccontextmanager
    async def _storage(self, action: str):
        try:
            yield
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Storage error while {action}: {e}")
            raise StorageFailure(f"Storage error while {action}") from e

    async def _get_owned(self, project_id: str, user_id: str) -> Project:
        if not project_id:
            raise ValidationFailed("project_id is required")
        if not user_id:
            raise ValidationFailed("user_id is required")
        async with self._storage("loading project"):
            project = await self.projects.get_by_id(project_id)
        # Someone else's project is reported exactly like a missing one
        if project is None or project.user_id != user_id:
            raise NotFound(f"Project {project_id} not found")
        return project

    async def _apply(
        self,
        project: Project,
        event: ProjectEvent,
        action: str,
        **fields,
    ) -> Project:
        """Apply `event` to `project` as a conditional update on its current status."""
        new_status = next_status(project.status, event)
        async with self._storage(action):
            updated = await self.projects.transition(
                project.id, [project.canonical_status], new_status, **fields
            )
        if updated is None:
            raise Conflict(
                f"Project {project.id} changed while {action}; retry",
                error="concurrent_update",
            )
        return updated

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create_project(
        self,
        user_id: str,
        name: Optional[str],
        goal: Optional[str] = None,
        room_type: Optional[str] = None,
        budget: Optional[str] = None,
        skill_level: Optional[str] = None,
    ) -> Project:
        clean_name = (name or "").strip()
        if len(clean_name) < self.settings.project_name_min_length:
            raise ValidationFailed(
                f"name must be at least {self.settings.project_name_min_length} characters",
                error="invalid_name",
            )

        entitlement = await self.entitlements.resolve(user_id)
        if entitlement.remaining <= 0:
            raise _quota_exhausted(entitlement)

        async with self._storage("creating project"):
            project = await self.projects.create_within_quota(
                user_id,
                entitlement.quota,
                name=clean_name,
                goal=_clean_text(goal),
                room_type=_clean_text(room_type),
                budget=_clean_text(budget),
                skill_level=_clean_text(skill_level),
                status=ProjectStatus.DRAFT.value,
                completed_steps=[],
                current_step_index=0,
            )
        if project is None:
            # lost a race with another create for the same user
            raise _quota_exhausted(entitlement)
        logger.info(f"Created project {project.id} for user {user_id}")
        return project

    async def get_project(self, project_id: str, user_id: str) -> Project:
        return await self._get_owned(project_id, user_id)

    async def list_projects(self, user_id: str, limit: int = 100, offset: int = 0) -> Sequence[Project]:
        if not user_id:
            raise ValidationFailed("user_id is required")
        async with self._storage("listing projects"):
            return await self.projects.list_for_user(user_id, limit=limit, offset=offset)

    async def delete_project(self, project_id: str, user_id: str) -> None:
        project = await self._get_owned(project_id, user_id)
        async with self._storage("deleting project"):
            deleted = await self.projects.delete(project.id)
        if not deleted:
            raise NotFound(f"Project {project_id} not found")
        logger.info(f"Deleted project {project_id} for user {user_id}")

    async def attach_image(self, project_id: str, user_id: str, image_url: str) -> Project:
        url = _validate_image_url(image_url)
        project = await self._get_owned(project_id, user_id)
        return await self._apply(
            project, ProjectEvent.IMAGE_ATTACHED, "attaching image", input_image_url=url
        )

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    async def request_preview(
        self,
        project_id: str,
        user_id: str,
        options: Optional[dict[str, Any]] = None,
    ) -> OperationAccepted:
        """
        Accept a preview request and hand it to the background runner.

        Checks run in order: ownership, image present, entitlement, the
        single-preview policy, the in-flight guard, then the transition itself.
        A rejection at any step leaves the project untouched.
        """
        project = await self._get_owned(project_id, user_id)

        if not project.input_image_url:
            raise ValidationFailed("Attach an image before requesting a preview", error="image_required")

        entitlement = await self.entitlements.resolve(user_id)
        if not entitlement.preview_allowed:
            raise PermissionDenied(
                f"Previews are not available on the {entitlement.tier.value} tier",
                error="preview_not_allowed",
            )

        if self.settings.single_preview_per_project and (
            project.preview_url or project.preview_status == PreviewStatus.READY.value
        ):
            raise Conflict("This project already has a preview", error="preview_exists")

        if (
            project.canonical_status is ProjectStatus.PREVIEW_REQUESTED
            or project.preview_status in IN_FLIGHT_PREVIEW_STATUSES
        ):
            raise Conflict("A preview is already being generated for this project", error="preview_in_progress")

        opts = self._preview_options(project, options)
        updated = await self._apply(
            project,
            ProjectEvent.PREVIEW_REQUESTED,
            "requesting preview",
            preview_url=None,
            preview_status=PreviewStatus.QUEUED.value,
            preview_meta={
                "mode": self.settings.preview_mode,
                "requested_at": utcnow().isoformat(),
            },
        )

        operation = await self._persist_operation(updated, OperationKind.PREVIEW, opts)
        logger.info(f"[PREVIEW] Accepted preview for project {project_id} (operation {operation.id})")
        return OperationAccepted(project=updated, operation_id=operation.id)

    @staticmethod
    def _preview_options(project: Project, options: Optional[dict[str, Any]]) -> dict[str, Any]:
        opts = {k: v for k, v in (options or {}).items() if v is not None}
        opts.setdefault("prompt", project.goal or project.name)
        if project.room_type:
            opts.setdefault("room_type", project.room_type)
        return opts

    async def preview_state(self, project_id: str, user_id: str) -> dict[str, Any]:
        """Polling view of a project's preview."""
        project = await self._get_owned(project_id, user_id)
        return {
            "status": project.canonical_status.value,
            "preview_status": project.preview_status,
            "preview_url": project.preview_url,
            "preview_meta": project.preview_meta,
        }

    async def skip_preview(self, project_id: str, user_id: str) -> Project:
        project = await self._get_owned(project_id, user_id)
        updated = await self._apply(project, ProjectEvent.PREVIEW_SKIPPED, "skipping preview")
        logger.info(f"Project {project_id} skipped preview, ready to build")
        return updated

    # ------------------------------------------------------------------
    # Plan
    # ------------------------------------------------------------------

    async def request_plan(
        self,
        project_id: str,
        user_id: str,
        options: Optional[dict[str, Any]] = None,
    ) -> OperationAccepted:
        project = await self._get_owned(project_id, user_id)

        if project.canonical_status is ProjectStatus.PLAN_REQUESTED:
            raise Conflict("A plan is already being generated for this project", error="plan_in_progress")

        options = options or {}
        opts = {
            "description": _clean_text(options.get("description")) or project.goal or project.name,
            "budget": _clean_text(options.get("budget")) or project.budget,
            "skill_level": _clean_text(options.get("skill_level")) or project.skill_level,
        }
        updated = await self._apply(
            project,
            ProjectEvent.PLAN_REQUESTED,
            "requesting plan",
            plan_meta={
                "mode": self.settings.plan_mode,
                "requested_at": utcnow().isoformat(),
            },
        )

        operation = await self._persist_operation(updated, OperationKind.PLAN, opts)
        logger.info(f"[PLAN] Accepted plan for project {project_id} (operation {operation.id})")
        return OperationAccepted(project=updated, operation_id=operation.id)

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    async def update_progress(
        self,
        project_id: str,
        user_id: str,
        completed_steps: Optional[Iterable[Any]] = None,
        current_step_index: Any = 0,
    ) -> Project:
        project = await self._get_owned(project_id, user_id)

        if completed_steps is not None and isinstance(completed_steps, (str, bytes, dict)):
            raise ValidationFailed("completed_steps must be a list of step indices")
        completed = sorted({_coerce_index(v, "completed_steps") for v in (completed_steps or [])})
        index = _coerce_index(0 if current_step_index is None else current_step_index, "current_step_index")

        step_count = project.step_count
        if step_count == 0:
            if index != 0 or completed:
                raise ValidationFailed("Project has no plan steps yet", error="no_plan_steps")
        else:
            if not 0 <= index < step_count:
                raise ValidationFailed(
                    f"current_step_index must be between 0 and {step_count - 1}",
                    error="step_out_of_range",
                )
            if any(not 0 <= i < step_count for i in completed):
                raise ValidationFailed(
                    f"completed_steps must be between 0 and {step_count - 1}",
                    error="step_out_of_range",
                )

        fields = {"completed_steps": completed, "current_step_index": index}
        if can_transition(project.status, ProjectEvent.PROGRESS_UPDATED):
            return await self._apply(project, ProjectEvent.PROGRESS_UPDATED, "updating progress", **fields)

        # Progress recorded without a status change (e.g. while a plan regenerates)
        async with self._storage("updating progress"):
            updated = await self.projects.update(project.id, Project.status == project.status, **fields)
        if updated is None:
            raise Conflict(f"Project {project.id} changed while updating progress; retry", error="concurrent_update")
        return updated

    # ------------------------------------------------------------------
    # Background completions (called by the operation runner)
    # ------------------------------------------------------------------

    async def complete_preview(self, project_id: str, outcome: PreviewOutcome) -> Optional[Project]:
        """
        Record a finished preview. Returns None if the project no longer exists.

        If the project left `preview_requested` meanwhile (e.g. the owner skipped
        the preview) only the preview fields are written.
        """
        fields = {
            "preview_url": outcome.preview_url,
            "preview_status": PreviewStatus.READY.value,
            "preview_meta": outcome.meta(),
        }
        return await self._finish(project_id, ProjectEvent.PREVIEW_SUCCEEDED, fields)

    async def fail_preview(self, project_id: str, reason: str) -> Optional[Project]:
        fields = {
            "preview_url": None,
            "preview_status": PreviewStatus.ERROR.value,
            "preview_meta": {"error": reason, "failed_at": utcnow().isoformat()},
        }
        return await self._finish(project_id, ProjectEvent.PREVIEW_FAILED, fields)

    async def mark_preview_processing(self, project_id: str, job_id: str, mode: str) -> Optional[Project]:
        """Expose a submitted remote job to pollers."""
        project = await self.projects.get_by_id(project_id)
        if project is None:
            return None
        meta = dict(project.preview_meta or {})
        meta.update({"jobId": job_id, "mode": mode})
        return await self.projects.update(
            project_id,
            Project.status == ProjectStatus.PREVIEW_REQUESTED.value,
            preview_status=PreviewStatus.PROCESSING.value,
            preview_meta=meta,
        )

    async def complete_plan(self, project_id: str, outcome: PlanOutcome) -> Optional[Project]:
        fields = {
            "plan_json": dict(normalize_plan(outcome.plan)),
            "plan_meta": outcome.meta(),
            "completed_steps": [],
            "current_step_index": 0,
        }
        return await self._finish(project_id, ProjectEvent.PLAN_SUCCEEDED, fields)

    async def fail_plan(self, project_id: str, reason: str) -> Optional[Project]:
        fields = {"plan_meta": {"error": reason, "failed_at": utcnow().isoformat()}}
        return await self._finish(project_id, ProjectEvent.PLAN_FAILED, fields)

    async def _finish(self, project_id: str, event: ProjectEvent, fields: dict[str, Any]) -> Optional[Project]:
        project = await self.projects.get_by_id(project_id)
        if project is None:
            return None
        if can_transition(project.status, event):
            updated = await self.projects.transition(
                project_id, [project.canonical_status], next_status(project.status, event), **fields
            )
            if updated is not None:
                return updated
        logger.info(
            f"Project {project_id} is '{project.status}', recording {event.value} result without a status change"
        )
        return await self.projects.update(project_id, **fields)

    # ------------------------------------------------------------------
    # Pending operations
    # ------------------------------------------------------------------

    async def _persist_operation(
        self,
        project: Project,
        kind: OperationKind,
        options: dict[str, Any],
    ) -> PendingOperation:
        try:
            operation = await self.operations.create(
                project_id=project.id,
                user_id=project.user_id,
                kind=kind.value,
                status=OperationStatus.PENDING.value,
                options=options,
                deadline_at=utcnow() + timedelta(seconds=self.settings.operation_deadline_seconds),
            )
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Could not persist {kind.value} operation for project {project.id}: {e}")
            await self._revert_request(project, kind)
            raise StorageFailure(f"Could not queue {kind.value} generation") from e

        if self.scheduler is not None:
            self.scheduler(operation.id)
        return operation

    async def _revert_request(self, project: Project, kind: OperationKind) -> None:
        try:
            if kind is OperationKind.PREVIEW:
                await self.fail_preview(project.id, "could not queue preview generation")
            else:
                await self.fail_plan(project.id, "could not queue plan generation")
        except SQLAlchemyError:
            await self.session.rollback()
            logger.exception(f"Project {project.id} left in '{project.status}' after a failed enqueue")
