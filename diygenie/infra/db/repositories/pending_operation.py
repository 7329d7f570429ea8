"""
PendingOperation repository.
"""
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from diygenie.infra.db.base import utcnow
from diygenie.infra.db.models.pending_operation import (
    ACTIVE_OPERATION_STATUSES,
    OperationStatus,
    PendingOperation,
)
from diygenie.infra.db.repositories.base import BaseRepository


class PendingOperationRepository(BaseRepository[PendingOperation]):
    """Repository for background preview/plan operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(PendingOperation, session)

    async def get_active(self) -> Sequence[PendingOperation]:
        """All operations that have not finished, oldest first."""
        stmt = (
            select(PendingOperation)
            .where(PendingOperation.status.in_(ACTIVE_OPERATION_STATUSES))
            .order_by(PendingOperation.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def mark_running(self, id: str) -> Optional[PendingOperation]:
        op = await self.get_by_id(id)
        if op is None or not op.is_active:
            return None
        return await self.update(id, status=OperationStatus.RUNNING.value, attempts=(op.attempts or 0) + 1)

    async def set_job(self, id: str, provider_job_id: str, mode: str) -> Optional[PendingOperation]:
        return await self.update(id, provider_job_id=provider_job_id, mode=mode)

    async def complete(self, id: str, mode: Optional[str] = None) -> Optional[PendingOperation]:
        fields = {"status": OperationStatus.COMPLETED.value, "completed_at": utcnow()}
        if mode:
            fields["mode"] = mode
        return await self.update(id, **fields)

    async def fail(self, id: str, error_message: str) -> Optional[PendingOperation]:
        return await self.update(
            id,
            status=OperationStatus.FAILED.value,
            error_message=error_message,
            completed_at=utcnow(),
        )
