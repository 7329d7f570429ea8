"""
Entitlement resolution.

Answers, for one user: which tier are they on, how many projects may they own,
how many do they own now, and may they generate previews?
"""
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from diygenie.config import Settings
from diygenie.infra.db.models.profile import PlanTier
from diygenie.infra.db.repositories import ProfileRepository, ProjectRepository
from diygenie.services.errors import StorageFailure, ValidationFailed

logger = logging.getLogger(__name__)

TIER_QUOTAS: dict[PlanTier, int] = {
    PlanTier.FREE: 2,
    PlanTier.CASUAL: 5,
    PlanTier.PRO: 25,
}


@dataclass(frozen=True)
class Entitlement:
    """Resolved access for a user."""
    tier: PlanTier
    quota: int
    used: int
    remaining: int
    preview_allowed: bool
    degraded: bool = False


def quota_for(tier: PlanTier, settings: Settings) -> int:
    if tier is PlanTier.FREE and settings.free_quota_override is not None and not settings.is_production:
        return settings.free_quota_override
    return TIER_QUOTAS[tier]


def build_entitlement(tier: PlanTier, used: int, settings: Settings, degraded: bool = False) -> Entitlement:
    quota = quota_for(tier, settings)
    return Entitlement(
        tier=tier,
        quota=quota,
        used=used,
        remaining=max(0, quota - used),
        preview_allowed=tier is not PlanTier.FREE,
        degraded=degraded,
    )


class EntitlementResolver:
    """
    Resolves a user's Entitlement from their Profile and project count.

    The only side effect is lazily creating a FREE profile for a user id the
    store has never seen.
    """

    def __init__(self, session: AsyncSession, settings: Settings):
        self.session = session
        self.settings = settings
        self.profiles = ProfileRepository(session)
        self.projects = ProjectRepository(session)

    async def resolve(self, user_id: str) -> Entitlement:
        if user_id is None or not str(user_id).strip():
            raise ValidationFailed("user_id is required")
        user_id = str(user_id).strip()

        try:
            profile = await self.profiles.get_or_create(user_id)
            used = await self.projects.count_for_user(user_id)
        except SQLAlchemyError as e:
            await self.session.rollback()
            if self.settings.entitlement_fail_open and not self.settings.is_production:
                logger.warning(
                    f"[ENTITLEMENT] Degraded mode: storage lookup failed for user {user_id} ({e.__class__.__name__}); "
                    f"falling back to free tier with previews disabled"
                )
                return build_entitlement(PlanTier.FREE, 0, self.settings, degraded=True)
            logger.error(f"[ENTITLEMENT] Storage lookup failed for user {user_id}: {e}")
            raise StorageFailure("Could not resolve entitlements") from e

        tier = PlanTier.coerce(profile.plan_tier)
        entitlement = build_entitlement(tier, used, self.settings)
        logger.debug(
            f"[ENTITLEMENT] user={user_id} tier={tier.value} quota={entitlement.quota} "
            f"used={entitlement.used} remaining={entitlement.remaining}"
        )
        return entitlement
