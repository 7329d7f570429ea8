"""
PendingOperation SQLAlchemy model.

Durable record of a background preview or plan job, so a restarted process can
pick the work up again instead of leaving a project stuck in *_requested.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from diygenie.infra.db.base import Base, utcnow


def generate_id() -> str:
    return str(uuid.uuid4())


class OperationKind(str, Enum):
    PREVIEW = "preview"
    PLAN = "plan"


class OperationStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_OPERATION_STATUSES = (OperationStatus.PENDING.value, OperationStatus.RUNNING.value)


class PendingOperation(Base):
    __tablename__ = "pending_operations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    # No FK: the row must outlive a deleted project so the failed write can be recorded.
    project_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(default=None, onupdate=utcnow)

    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default=OperationStatus.PENDING.value, index=True)
    options: Mapped[dict] = mapped_column(JSON, default=dict)

    provider_job_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    mode: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    deadline_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_OPERATION_STATUSES

    def __repr__(self) -> str:
        return f"<PendingOperation(id={self.id}, kind={self.kind}, status={self.status})>"
