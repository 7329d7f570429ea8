"""
DIY Genie Adapters - Wrappers for third-party generators.

Each adapter provides a standardized interface:
- Preview providers (room redesign images): stub, remote image service
- Plan providers (build plans, design ideas): stub, OpenAI

The concrete provider is chosen once at startup from Settings and injected.
"""
import logging

from diygenie.config import Settings

from .base import (
    JobStatus,
    PlanProvider,
    PreviewJob,
    PreviewProvider,
    ProviderMode,
)
from .errors import ProviderConfigError, ProviderError, ProviderTimeoutError
from .preview import Decor8PreviewProvider, StubPreviewProvider
from .plan import OpenAIPlanProvider, StubPlanProvider

logger = logging.getLogger(__name__)

__all__ = [
    # Base
    "JobStatus",
    "PlanProvider",
    "PreviewJob",
    "PreviewProvider",
    "ProviderMode",
    # Errors
    "ProviderError",
    "ProviderTimeoutError",
    "ProviderConfigError",
    # Implementations
    "StubPreviewProvider",
    "Decor8PreviewProvider",
    "StubPlanProvider",
    "OpenAIPlanProvider",
    "get_preview_provider",
    "get_plan_provider",
    "get_stub_preview_provider",
    "get_stub_plan_provider",
]


def get_stub_preview_provider(settings: Settings) -> StubPreviewProvider:
    return StubPreviewProvider(
        delay_seconds=settings.preview_stub_delay_seconds,
        mode=settings.preview_stub_mode,
        placeholder_url=settings.preview_placeholder_url,
    )


def get_stub_plan_provider(settings: Settings) -> StubPlanProvider:
    return StubPlanProvider(delay_seconds=settings.plan_stub_delay_seconds)


def get_preview_provider(settings: Settings) -> PreviewProvider:
    """
    Factory for the configured preview provider.

    Falls back to the stub when the remote service is not configured.
    """
    if settings.preview_mode == "live":
        logger.info(f"[PREVIEW] Using remote image service at {settings.decor8_base_url}")
        return Decor8PreviewProvider(
            base_url=settings.decor8_base_url,
            api_key=settings.decor8_api_key,
            timeout_seconds=settings.provider_timeout_seconds,
        )
    logger.info("[PREVIEW] Using stub preview provider")
    return get_stub_preview_provider(settings)


def get_plan_provider(settings: Settings) -> PlanProvider:
    """Factory for the configured plan provider."""
    if settings.plan_mode == "live":
        logger.info(f"[PLAN] Using OpenAI plan provider (model={settings.openai_model})")
        return OpenAIPlanProvider(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            timeout_seconds=settings.provider_timeout_seconds,
        )
    logger.info("[PLAN] Using stub plan provider")
    return get_stub_plan_provider(settings)
