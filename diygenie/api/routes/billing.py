"""
Billing API Routes.

Checkout lives under /api/v1/billing; the Stripe webhook is mounted at the
root (/webhook) because it reads the raw request body and is authenticated by
its signature, not by the service key.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from diygenie.api.deps import get_context, get_current_user_id
from diygenie.context import AppContext
from diygenie.infra.db.models import PlanTier
from diygenie.infra.db.session import get_db
from diygenie.services.billing import BillingService
from ..schemas import CheckoutRequest, CheckoutResponse, WebhookAck

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/billing", tags=["billing"])
webhook_router = APIRouter(tags=["billing"])


@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout(
    data: CheckoutRequest,
    user_id: str = Depends(get_current_user_id),
    context: AppContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
) -> CheckoutResponse:
    """Start a subscription checkout for the caller."""
    service = BillingService(db, context.settings)
    result = await service.create_checkout_session(user_id, PlanTier(data.tier))
    return CheckoutResponse(**result)


@webhook_router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    context: AppContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
) -> WebhookAck:
    payload = await request.body()
    service = BillingService(db, context.settings)
    event = service.verify_event(payload, stripe_signature)
    action = await service.handle_event(event)
    return WebhookAck(received=True, action=action)
