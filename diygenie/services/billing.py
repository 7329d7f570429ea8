"""
Subscription billing via Stripe.

The webhook is the only writer of a profile's billing fields and its plan tier.
Signature verification is delegated entirely to `stripe.Webhook`.
"""
import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import stripe
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from diygenie.config import Settings
from diygenie.infra.db.models import PlanTier
from diygenie.infra.db.repositories import ProfileRepository
from diygenie.services.errors import ServiceUnavailable, StorageFailure, ValidationFailed

logger = logging.getLogger(__name__)

ACTIVE_SUBSCRIPTION_STATUSES = {"active", "trialing"}
PAID_TIERS = (PlanTier.CASUAL, PlanTier.PRO)


def tier_for_price(price_id: Optional[str], settings: Settings) -> PlanTier:
    """Map a Stripe price id to a plan tier; unknown prices are FREE."""
    if price_id and price_id == settings.casual_price_id:
        return PlanTier.CASUAL
    if price_id and price_id == settings.pro_price_id:
        return PlanTier.PRO
    return PlanTier.FREE


def price_for_tier(tier: PlanTier, settings: Settings) -> Optional[str]:
    if tier is PlanTier.CASUAL:
        return settings.casual_price_id
    if tier is PlanTier.PRO:
        return settings.pro_price_id
    return None


def _subscription_price_id(subscription: dict[str, Any]) -> Optional[str]:
    items = (subscription.get("items") or {}).get("data") or []
    if not items:
        return None
    price = items[0].get("price") or {}
    return price.get("id") if isinstance(price, dict) else None


def _period_end(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)
    except (TypeError, ValueError, OverflowError):
        return None


class BillingService:
    """Applies payment events to profiles and starts checkout sessions."""

    def __init__(self, session: AsyncSession, settings: Settings):
        self.session = session
        self.settings = settings
        self.profiles = ProfileRepository(session)

    def verify_event(self, payload: bytes, signature: Optional[str]) -> dict[str, Any]:
        """Verify the webhook signature and return the event as a plain dict."""
        if not self.settings.stripe_webhook_secret:
            raise ServiceUnavailable("Billing webhook is not configured", error="billing_not_configured")
        if not signature:
            raise ValidationFailed("Missing Stripe-Signature header", error="invalid_signature")
        try:
            stripe.Webhook.construct_event(payload, signature, self.settings.stripe_webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"[BILLING] Webhook signature verification failed: {e}")
            raise ValidationFailed("Invalid webhook signature", error="invalid_signature") from e
        except ValueError as e:
            raise ValidationFailed("Invalid webhook payload", error="invalid_payload") from e
        return json.loads(payload)

    async def handle_event(self, event: dict[str, Any]) -> Optional[str]:
        """
        Apply a verified event. Returns a short label of what was done, or None
        when the event was ignored.
        """
        event_type = event.get("type") or ""
        obj = (event.get("data") or {}).get("object") or {}
        try:
            if event_type == "checkout.session.completed":
                return await self._link_customer(obj)
            if event_type.startswith("customer.subscription."):
                return await self._apply_subscription(event_type, obj)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"[BILLING] Storage error while handling {event_type}: {e}")
            raise StorageFailure("Could not apply billing event") from e
        logger.info(f"[BILLING] Ignoring event type {event_type!r}")
        return None

    async def _link_customer(self, checkout: dict[str, Any]) -> Optional[str]:
        user_id = checkout.get("client_reference_id")
        customer_id = checkout.get("customer")
        if not user_id or not customer_id:
            logger.warning("[BILLING] checkout.session.completed without client_reference_id or customer")
            return None
        await self.profiles.upsert({"user_id": user_id}, stripe_customer_id=customer_id)
        logger.info(f"[BILLING] Linked customer {customer_id} to user {user_id}")
        return "customer_linked"

    async def _apply_subscription(self, event_type: str, subscription: dict[str, Any]) -> Optional[str]:
        customer_id = subscription.get("customer")
        profile = await self.profiles.get_by_customer(customer_id) if customer_id else None
        if profile is None:
            logger.warning(f"[BILLING] {event_type} for unknown customer {customer_id}")
            return None

        status = subscription.get("status")
        if event_type == "customer.subscription.deleted" or status not in ACTIVE_SUBSCRIPTION_STATUSES:
            tier = PlanTier.FREE
        else:
            tier = tier_for_price(_subscription_price_id(subscription), self.settings)

        await self.profiles.update(
            profile.user_id,
            stripe_subscription_id=subscription.get("id"),
            stripe_subscription_status=status,
            is_subscribed=status == "active" and event_type != "customer.subscription.deleted",
            current_period_end=_period_end(subscription.get("current_period_end")),
            plan_tier=tier.value,
        )
        logger.info(f"[BILLING] User {profile.user_id} subscription {status} -> tier {tier.value}")
        return "subscription_updated"

    async def create_checkout_session(self, user_id: str, tier: PlanTier) -> dict[str, str]:
        if tier not in PAID_TIERS:
            raise ValidationFailed("tier must be 'casual' or 'pro'", error="invalid_tier")
        price_id = price_for_tier(tier, self.settings)
        if not self.settings.stripe_secret_key or not price_id:
            raise ServiceUnavailable("Billing is not configured", error="billing_not_configured")

        try:
            # stripe's client is synchronous
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                api_key=self.settings.stripe_secret_key,
                mode="subscription",
                line_items=[{"price": price_id, "quantity": 1}],
                success_url=self.settings.checkout_success_url,
                cancel_url=self.settings.checkout_cancel_url,
                client_reference_id=user_id,
            )
        except stripe.StripeError as e:
            logger.error(f"[BILLING] Checkout session creation failed for user {user_id}: {e}")
            raise ServiceUnavailable("Could not start checkout", error="checkout_failed") from e

        logger.info(f"[BILLING] Checkout session {session.id} created for user {user_id} ({tier.value})")
        return {"checkout_url": session.url, "session_id": session.id}
