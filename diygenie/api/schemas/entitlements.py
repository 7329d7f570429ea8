"""
API Schemas for entitlements and billing.
"""
from typing import Literal

from pydantic import BaseModel


class EntitlementResponse(BaseModel):
    tier: str
    quota: int
    used: int
    remaining: int
    preview_allowed: bool
    degraded: bool = False


class CheckoutRequest(BaseModel):
    tier: Literal["casual", "pro"]


class CheckoutResponse(BaseModel):
    checkout_url: str
    session_id: str


class WebhookAck(BaseModel):
    received: bool = True
    action: str | None = None
