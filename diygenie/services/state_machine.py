"""
Project status transition table.

Every status change a project can undergo is listed here, and nowhere else.
`next_status` answers "what does `event` do to a project in `status`?" and
raises Conflict when the table has no entry.
"""
from enum import Enum

from diygenie.infra.db.models.project import ProjectStatus
from diygenie.services.errors import Conflict

S = ProjectStatus


class ProjectEvent(str, Enum):
    IMAGE_ATTACHED = "image_attached"
    PREVIEW_REQUESTED = "preview_requested"
    PREVIEW_SUCCEEDED = "preview_succeeded"
    PREVIEW_FAILED = "preview_failed"
    PLAN_REQUESTED = "plan_requested"
    PLAN_SUCCEEDED = "plan_succeeded"
    PLAN_FAILED = "plan_failed"
    PREVIEW_SKIPPED = "preview_skipped"
    PROGRESS_UPDATED = "progress_updated"


E = ProjectEvent

TRANSITIONS: dict[tuple[ProjectStatus, ProjectEvent], ProjectStatus] = {
    # draft
    (S.DRAFT, E.IMAGE_ATTACHED): S.DRAFT,
    (S.DRAFT, E.PREVIEW_REQUESTED): S.PREVIEW_REQUESTED,
    (S.DRAFT, E.PLAN_REQUESTED): S.PLAN_REQUESTED,
    (S.DRAFT, E.PREVIEW_SKIPPED): S.READY,
    # preview in flight
    (S.PREVIEW_REQUESTED, E.PREVIEW_SUCCEEDED): S.PREVIEW_READY,
    (S.PREVIEW_REQUESTED, E.PREVIEW_FAILED): S.PREVIEW_ERROR,
    (S.PREVIEW_REQUESTED, E.PREVIEW_SKIPPED): S.READY,
    # preview finished
    (S.PREVIEW_READY, E.IMAGE_ATTACHED): S.PREVIEW_READY,
    (S.PREVIEW_READY, E.PREVIEW_REQUESTED): S.PREVIEW_REQUESTED,
    (S.PREVIEW_READY, E.PLAN_REQUESTED): S.PLAN_REQUESTED,
    (S.PREVIEW_READY, E.PREVIEW_SKIPPED): S.READY,
    (S.PREVIEW_ERROR, E.IMAGE_ATTACHED): S.PREVIEW_ERROR,
    (S.PREVIEW_ERROR, E.PREVIEW_REQUESTED): S.PREVIEW_REQUESTED,
    (S.PREVIEW_ERROR, E.PLAN_REQUESTED): S.PLAN_REQUESTED,
    (S.PREVIEW_ERROR, E.PREVIEW_SKIPPED): S.READY,
    # plan in flight
    (S.PLAN_REQUESTED, E.PLAN_SUCCEEDED): S.PLAN_READY,
    (S.PLAN_REQUESTED, E.PLAN_FAILED): S.PLAN_ERROR,
    # plan finished
    (S.PLAN_READY, E.IMAGE_ATTACHED): S.PLAN_READY,
    (S.PLAN_READY, E.PLAN_REQUESTED): S.PLAN_REQUESTED,
    (S.PLAN_READY, E.PROGRESS_UPDATED): S.IN_PROGRESS,
    (S.PLAN_ERROR, E.IMAGE_ATTACHED): S.PLAN_ERROR,
    (S.PLAN_ERROR, E.PLAN_REQUESTED): S.PLAN_REQUESTED,
    # building
    (S.READY, E.IMAGE_ATTACHED): S.READY,
    (S.READY, E.PLAN_REQUESTED): S.PLAN_REQUESTED,
    (S.READY, E.PROGRESS_UPDATED): S.IN_PROGRESS,
    (S.IN_PROGRESS, E.IMAGE_ATTACHED): S.IN_PROGRESS,
    (S.IN_PROGRESS, E.PLAN_REQUESTED): S.PLAN_REQUESTED,
    (S.IN_PROGRESS, E.PROGRESS_UPDATED): S.IN_PROGRESS,
}


def can_transition(status: "str | ProjectStatus", event: ProjectEvent) -> bool:
    return (ProjectStatus.canonical(status), event) in TRANSITIONS


def next_status(status: "str | ProjectStatus", event: ProjectEvent) -> ProjectStatus:
    """Resolve the status after `event`, or raise Conflict if it is not allowed."""
    current = ProjectStatus.canonical(status)
    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        raise Conflict(
            f"Cannot apply '{event.value}' to a project in status '{current.value}'",
            error="illegal_transition",
        ) from None
