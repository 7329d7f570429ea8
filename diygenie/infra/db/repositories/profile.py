"""
Profile repository.
"""
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from diygenie.infra.db.models.profile import PlanTier, Profile
from diygenie.infra.db.repositories.base import BaseRepository


class ProfileRepository(BaseRepository[Profile]):
    """Repository for Profile rows (keyed by user_id)."""

    def __init__(self, session: AsyncSession):
        super().__init__(Profile, session)

    async def get_or_create(self, user_id: str) -> Profile:
        """
        Return the user's profile, creating a FREE one on first sight.

        Safe under concurrent first requests: losing the insert race is not an
        error, the row that won is returned.
        """
        profile = await self.get_by_id(user_id)
        if profile is not None:
            return profile
        try:
            return await self.create(user_id=user_id, plan_tier=PlanTier.FREE.value)
        except IntegrityError:
            await self.session.rollback()
            profile = await self.get_by_id(user_id)
            if profile is None:
                raise
            return profile

    async def get_by_customer(self, stripe_customer_id: str) -> Optional[Profile]:
        return await self.get_one_by(stripe_customer_id=stripe_customer_id)
