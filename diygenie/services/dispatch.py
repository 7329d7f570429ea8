"""
Provider dispatch.

Wraps the configured preview and plan providers with the fallback policy: any
provider-side failure (error, bad payload, timeout, missed deadline) degrades to
the deterministic stub result instead of surfacing as an error. A user-facing
spinner must always end with something to show.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from diygenie.adapters import (
    PlanProvider,
    PreviewJob,
    PreviewProvider,
    ProviderError,
    ProviderMode,
    ProviderTimeoutError,
)
from diygenie.adapters.base import JobStatus
from diygenie.infra.db.base import utcnow

logger = logging.getLogger(__name__)

JobSubmittedCallback = Callable[[str, ProviderMode], Awaitable[None]]


@dataclass
class PreviewOutcome:
    """Result of a preview generation, real or stub."""
    preview_url: str
    provider: str
    mode: ProviderMode
    job_id: Optional[str] = None
    thumb_url: Optional[str] = None
    fallback_reason: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict)

    def meta(self) -> dict[str, Any]:
        meta = {
            "mode": self.mode.value,
            "provider": self.provider,
            "jobId": self.job_id,
            "thumb_url": self.thumb_url,
            "completed_at": utcnow().isoformat(),
        }
        if self.fallback_reason:
            meta["fallback_reason"] = self.fallback_reason
        return meta


@dataclass
class PlanOutcome:
    """Raw plan document plus where it came from."""
    plan: dict[str, Any]
    provider: str
    mode: ProviderMode
    fallback_reason: Optional[str] = None

    def meta(self) -> dict[str, Any]:
        meta = {
            "mode": self.mode.value,
            "provider": self.provider,
            "completed_at": utcnow().isoformat(),
        }
        if self.fallback_reason:
            meta["fallback_reason"] = self.fallback_reason
        return meta


async def _notify_submitted(on_submitted: JobSubmittedCallback, job_id: str, mode: ProviderMode) -> None:
    # a failed write here is not a provider failure and must not trigger the stub
    try:
        await on_submitted(job_id, mode)
    except Exception:
        logger.exception(f"[PREVIEW] Could not record submitted job {job_id}; polling it anyway")


def _seconds_until(deadline: Optional[datetime]) -> Optional[float]:
    if deadline is None:
        return None
    return (deadline - utcnow()).total_seconds()


class ProviderDispatch:
    """
    Runs preview/plan generation against the injected providers.

    `preview_fallback` and `plan_fallback` are the stub providers used when the
    primary provider fails; when the primary already is a stub it is used as-is.
    """

    def __init__(
        self,
        preview_provider: PreviewProvider,
        plan_provider: PlanProvider,
        preview_fallback: PreviewProvider,
        plan_fallback: PlanProvider,
        poll_interval_seconds: float = 2.0,
    ):
        self.preview_provider = preview_provider
        self.plan_provider = plan_provider
        self.preview_fallback = preview_fallback
        self.plan_fallback = plan_fallback
        self.poll_interval_seconds = poll_interval_seconds

    @property
    def modes(self) -> dict[str, str]:
        return {
            "preview": self.preview_provider.mode.value,
            "plan": self.plan_provider.mode.value,
        }

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    async def generate_preview(
        self,
        image_url: str,
        options: Optional[dict[str, Any]] = None,
        *,
        deadline: Optional[datetime] = None,
        job_id: Optional[str] = None,
        on_submitted: Optional[JobSubmittedCallback] = None,
    ) -> PreviewOutcome:
        """
        Generate a preview, resuming `job_id` if one was already submitted.

        Never raises for provider-side problems; those yield a stub outcome
        with `fallback_reason` set.
        """
        options = options or {}
        provider = self.preview_provider

        if provider.mode is ProviderMode.STUB:
            job = await provider.submit(image_url, options)
            return self._preview_outcome(provider, job)

        try:
            remaining = _seconds_until(deadline)
            if remaining is not None and remaining <= 0:
                raise ProviderTimeoutError("operation deadline passed before the provider call")
            job = await asyncio.wait_for(
                self._drive_preview_job(provider, image_url, options, job_id, on_submitted),
                timeout=remaining,
            )
            return self._preview_outcome(provider, job)
        except asyncio.TimeoutError:
            reason = "preview provider exceeded the operation deadline"
        except ProviderError as e:
            reason = str(e) or e.__class__.__name__
        except Exception as e:
            logger.exception(f"[PREVIEW] Unexpected error from provider {provider.name}")
            reason = f"unexpected provider error: {e.__class__.__name__}"

        logger.warning(f"[PREVIEW] Provider {provider.name} failed ({reason}); falling back to stub")
        job = await self.preview_fallback.submit(image_url, options)
        return self._preview_outcome(self.preview_fallback, job, fallback_reason=reason)

    async def _drive_preview_job(
        self,
        provider: PreviewProvider,
        image_url: str,
        options: dict[str, Any],
        job_id: Optional[str],
        on_submitted: Optional[JobSubmittedCallback],
    ) -> PreviewJob:
        if job_id:
            logger.info(f"[PREVIEW] Resuming remote job {job_id}")
            job = await provider.poll(job_id)
        else:
            job = await provider.submit(image_url, options)
            if job.job_id and on_submitted is not None:
                await _notify_submitted(on_submitted, job.job_id, provider.mode)

        while not job.status.is_terminal:
            await asyncio.sleep(self.poll_interval_seconds)
            job = await provider.poll(job.job_id)
            logger.debug(f"[PREVIEW] Poll job={job.job_id} status={job.status.value}")

        if job.status is JobStatus.FAILED:
            raise ProviderError(job.error_message or f"preview job {job.job_id} failed")
        if not job.preview_url:
            raise ProviderError(f"preview job {job.job_id} finished without a preview_url")
        return job

    @staticmethod
    def _preview_outcome(
        provider: PreviewProvider,
        job: PreviewJob,
        fallback_reason: Optional[str] = None,
    ) -> PreviewOutcome:
        return PreviewOutcome(
            preview_url=job.preview_url,
            provider=provider.name,
            mode=provider.mode,
            job_id=job.job_id or None,
            thumb_url=job.thumb_url,
            fallback_reason=fallback_reason,
            raw=job.raw,
        )

    # ------------------------------------------------------------------
    # Plan
    # ------------------------------------------------------------------

    async def generate_plan(
        self,
        description: str,
        budget: Optional[str] = None,
        skill_level: Optional[str] = None,
        *,
        deadline: Optional[datetime] = None,
    ) -> PlanOutcome:
        """Generate a raw plan; provider failures yield the stub plan."""
        provider = self.plan_provider

        if provider.mode is ProviderMode.STUB:
            plan = await provider.generate_plan(description, budget, skill_level)
            return PlanOutcome(plan=plan, provider=provider.name, mode=provider.mode)

        try:
            remaining = _seconds_until(deadline)
            if remaining is not None and remaining <= 0:
                raise ProviderTimeoutError("operation deadline passed before the provider call")
            plan = await asyncio.wait_for(
                provider.generate_plan(description, budget, skill_level),
                timeout=remaining,
            )
            if not isinstance(plan, dict):
                raise ProviderError("plan provider returned a non-object plan")
            return PlanOutcome(plan=plan, provider=provider.name, mode=provider.mode)
        except asyncio.TimeoutError:
            reason = "plan provider exceeded the operation deadline"
        except ProviderError as e:
            reason = str(e) or e.__class__.__name__
        except Exception as e:
            logger.exception(f"[PLAN] Unexpected error from provider {provider.name}")
            reason = f"unexpected provider error: {e.__class__.__name__}"

        logger.warning(f"[PLAN] Provider {provider.name} failed ({reason}); falling back to stub")
        plan = await self.plan_fallback.generate_plan(description, budget, skill_level)
        return PlanOutcome(
            plan=plan,
            provider=self.plan_fallback.name,
            mode=self.plan_fallback.mode,
            fallback_reason=reason,
        )

    # ------------------------------------------------------------------
    # Design suggestions
    # ------------------------------------------------------------------

    async def suggest_designs(
        self,
        room_type: Optional[str] = None,
        goal: Optional[str] = None,
        budget: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        try:
            return await self.plan_provider.suggest_designs(room_type, goal, budget)
        except ProviderError as e:
            logger.warning(f"[PLAN] Suggestions from {self.plan_provider.name} failed ({e}); using stub ideas")
            return await self.plan_fallback.suggest_designs(room_type, goal, budget)

    async def aclose(self) -> None:
        for provider in {id(p): p for p in (
            self.preview_provider, self.plan_provider, self.preview_fallback, self.plan_fallback
        )}.values():
            await provider.aclose()
