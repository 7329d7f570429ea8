"""
Repository layer for database operations.

Provides easy access to all repositories.
"""
from diygenie.infra.db.repositories.base import BaseRepository
from diygenie.infra.db.repositories.project import ProjectRepository
from diygenie.infra.db.repositories.profile import ProfileRepository
from diygenie.infra.db.repositories.room_scan import RoomScanRepository
from diygenie.infra.db.repositories.pending_operation import PendingOperationRepository

__all__ = [
    "BaseRepository",
    "ProjectRepository",
    "ProfileRepository",
    "RoomScanRepository",
    "PendingOperationRepository",
]
