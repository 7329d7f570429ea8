"""
Project SQLAlchemy model.

A Project is one home-improvement job tracked from photo to finished build.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from diygenie.infra.db.base import Base, utcnow

if TYPE_CHECKING:
    from diygenie.infra.db.models.room_scan import RoomScan


def generate_id() -> str:
    return str(uuid.uuid4())


class ProjectStatus(str, Enum):
    """Lifecycle status of a project."""
    DRAFT = "draft"
    NEW = "new"  # deprecated synonym of DRAFT, accepted on read
    PREVIEW_REQUESTED = "preview_requested"
    PREVIEW_READY = "preview_ready"
    PREVIEW_ERROR = "preview_error"
    PLAN_REQUESTED = "plan_requested"
    PLAN_READY = "plan_ready"
    PLAN_ERROR = "plan_error"
    READY = "ready"
    IN_PROGRESS = "in_progress"

    @classmethod
    def canonical(cls, value: "str | ProjectStatus") -> "ProjectStatus":
        status = cls(value)
        return cls.DRAFT if status is cls.NEW else status


class PreviewStatus(str, Enum):
    """Sub-status of the preview artifact."""
    QUEUED = "queued"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


class Project(Base):
    """
    A user's project.

    `preview_url` is only ever set together with `preview_status == "ready"`.
    """

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(default=None, onupdate=utcnow)

    # Basic info
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    goal: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    room_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    budget: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    skill_level: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # Status
    status: Mapped[str] = mapped_column(String(32), default=ProjectStatus.DRAFT.value, index=True)

    # Image + preview
    input_image_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    preview_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    preview_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    preview_meta: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Plan + progress
    plan_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    plan_meta: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    completed_steps: Mapped[list] = mapped_column(JSON, default=list)
    current_step_index: Mapped[int] = mapped_column(Integer, default=0)

    scans: Mapped[list["RoomScan"]] = relationship(
        "RoomScan",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def canonical_status(self) -> ProjectStatus:
        return ProjectStatus.canonical(self.status)

    @property
    def step_count(self) -> int:
        steps = (self.plan_json or {}).get("steps") or []
        return len(steps)

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name}, status={self.status})>"
