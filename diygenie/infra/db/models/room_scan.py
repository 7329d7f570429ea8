"""
RoomScan SQLAlchemy model.

AR-derived measurement record attached to a project. The measurement itself is
produced elsewhere; this table only holds its status and result.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from diygenie.infra.db.base import Base, utcnow

if TYPE_CHECKING:
    from diygenie.infra.db.models.project import Project


def generate_id() -> str:
    return str(uuid.uuid4())


class MeasureStatus(str, Enum):
    PENDING = "pending"
    MEASURING = "measuring"
    DONE = "done"
    FAILED = "failed"


class RoomScan(Base):
    __tablename__ = "room_scans"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(default=None, onupdate=utcnow)

    scan_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    measure_status: Mapped[str] = mapped_column(String(16), default=MeasureStatus.PENDING.value)
    measure_result: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    project: Mapped["Project"] = relationship("Project", back_populates="scans")

    def __repr__(self) -> str:
        return f"<RoomScan(id={self.id}, project_id={self.project_id}, measure_status={self.measure_status})>"
