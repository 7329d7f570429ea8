"""
RoomScan repository.
"""
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from diygenie.infra.db.models.room_scan import RoomScan
from diygenie.infra.db.repositories.base import BaseRepository


class RoomScanRepository(BaseRepository[RoomScan]):
    def __init__(self, session: AsyncSession, user_id: Optional[str] = None):
        super().__init__(RoomScan, session, user_id)

    async def list_for_project(self, project_id: str) -> Sequence[RoomScan]:
        stmt = select(RoomScan).where(RoomScan.project_id == project_id).order_by(RoomScan.created_at.asc())
        stmt = self._apply_user_filter(stmt)
        result = await self.session.execute(stmt)
        return result.scalars().all()
