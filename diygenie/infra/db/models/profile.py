"""
Profile SQLAlchemy model.

One row per user; holds the subscription tier and the payment linkage that the
billing webhook maintains.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from diygenie.infra.db.base import Base, utcnow


class PlanTier(str, Enum):
    """Subscription tiers."""
    FREE = "free"
    CASUAL = "casual"
    PRO = "pro"

    @classmethod
    def coerce(cls, value: Optional[str]) -> "PlanTier":
        """Unknown or missing tiers resolve to FREE."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.FREE


class Profile(Base):
    """Per-user subscription profile."""

    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(default=None, onupdate=utcnow)

    plan_tier: Mapped[str] = mapped_column(String(16), default=PlanTier.FREE.value, nullable=False)

    # Maintained by the billing webhook only
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    stripe_subscription_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    is_subscribed: Mapped[bool] = mapped_column(Boolean, default=False)
    current_period_end: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Profile(user_id={self.user_id}, plan_tier={self.plan_tier})>"
