"""
SQLAlchemy models for the DIY Genie database.

Exports all models for easy importing.
"""
from diygenie.infra.db.base import Base

# Import all models so they're registered with Base
from diygenie.infra.db.models.project import Project, ProjectStatus, PreviewStatus
from diygenie.infra.db.models.profile import Profile, PlanTier
from diygenie.infra.db.models.room_scan import RoomScan, MeasureStatus
from diygenie.infra.db.models.pending_operation import (
    PendingOperation,
    OperationKind,
    OperationStatus,
)

__all__ = [
    "Base",
    "Project",
    "ProjectStatus",
    "PreviewStatus",
    "Profile",
    "PlanTier",
    "RoomScan",
    "MeasureStatus",
    "PendingOperation",
    "OperationKind",
    "OperationStatus",
]
