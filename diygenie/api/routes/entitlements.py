"""
Entitlements API Routes.
"""
from fastapi import APIRouter, Depends

from diygenie.api.deps import get_current_user_id, get_entitlement_resolver
from diygenie.services.entitlements import EntitlementResolver
from ..schemas import EntitlementResponse

router = APIRouter(prefix="/me", tags=["entitlements"])


@router.get("/entitlements", response_model=EntitlementResponse)
async def get_entitlements(
    user_id: str = Depends(get_current_user_id),
    resolver: EntitlementResolver = Depends(get_entitlement_resolver),
) -> EntitlementResponse:
    """Tier, quota and preview permission for the caller."""
    entitlement = await resolver.resolve(user_id)
    return EntitlementResponse(
        tier=entitlement.tier.value,
        quota=entitlement.quota,
        used=entitlement.used,
        remaining=entitlement.remaining,
        preview_allowed=entitlement.preview_allowed,
        degraded=entitlement.degraded,
    )
