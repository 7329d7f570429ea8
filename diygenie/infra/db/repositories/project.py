"""
Project repository for CRUD operations on projects.
"""
from typing import Iterable, Optional, Sequence
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from diygenie.infra.db.models.project import Project, ProjectStatus
from diygenie.infra.db.repositories.base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    """Repository for Project CRUD operations."""

    def __init__(self, session: AsyncSession, user_id: Optional[str] = None):
        super().__init__(Project, session, user_id)

    async def list_for_user(self, user_id: str, limit: int = 100, offset: int = 0) -> Sequence[Project]:
        """Get a user's projects, newest first."""
        stmt = (
            select(Project)
            .where(Project.user_id == user_id)
            .order_by(Project.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_for_user(self, user_id: str) -> int:
        """Number of projects a user currently owns."""
        return await self.count(user_id=user_id)

    async def create_within_quota(self, user_id: str, quota: int, **fields) -> Optional[Project]:
        """
        Insert a project for `user_id` unless they would then own more than `quota`.

        The insert and the ownership count share one transaction and the count
        runs after our row is written, so concurrent creates for the same user
        are serialized by the database write lock (an advisory lock on Postgres).
        Returns None, with nothing written, when the quota is already used up.
        """
        if self.session.bind.dialect.name == "postgresql":
            await self.session.execute(select(func.pg_advisory_xact_lock(func.hashtext(user_id))))

        fields.setdefault("id", str(uuid4()))
        project = Project(user_id=user_id, **fields)
        self.session.add(project)
        await self.session.flush()

        owned = await self.session.scalar(
            select(func.count()).select_from(Project).where(Project.user_id == user_id)
        )
        if owned > quota:
            await self.session.rollback()
            return None
        await self.session.commit()
        await self.session.refresh(project)
        return project

    async def transition(
        self,
        id: str,
        expected: Iterable[ProjectStatus],
        new_status: ProjectStatus,
        **fields,
    ) -> Optional[Project]:
        """
        Move a project to `new_status` only if it is still in one of `expected`.

        Returns None when the row is gone or its status changed underneath us.
        """
        expected_values = _with_legacy_synonyms(expected)
        return await self.update(
            id,
            Project.status.in_(expected_values),
            status=new_status.value,
            **fields,
        )


def _with_legacy_synonyms(statuses: Iterable[ProjectStatus]) -> list[str]:
    values = {ProjectStatus(s).value for s in statuses}
    if ProjectStatus.DRAFT.value in values:
        values.add(ProjectStatus.NEW.value)
    return sorted(values)
