"""
Stub preview provider.

Stands in for the remote image service: waits out an artificial latency window,
then returns either the input photo itself or a placeholder image seeded from it.
Results are deterministic for a given input.
"""
import asyncio
import hashlib
import logging
from typing import Any, Optional

from ..base import JobStatus, PreviewJob, PreviewProvider, ProviderMode

logger = logging.getLogger(__name__)


def seed_for(image_url: str) -> str:
    return hashlib.sha256(image_url.encode("utf-8")).hexdigest()[:12]


class StubPreviewProvider(PreviewProvider):
    """Deterministic local preview generator."""

    def __init__(
        self,
        delay_seconds: float = 5.0,
        mode: str = "echo",
        placeholder_url: str = "https://picsum.photos/seed/{seed}/1024/768",
    ):
        self.delay_seconds = delay_seconds
        self.stub_mode = mode
        self.placeholder_url = placeholder_url

    @property
    def name(self) -> str:
        return "stub"

    @property
    def mode(self) -> ProviderMode:
        return ProviderMode.STUB

    def result_url(self, image_url: str) -> str:
        if self.stub_mode == "placeholder":
            return self.placeholder_url.format(seed=seed_for(image_url))
        return image_url

    async def submit(self, image_url: str, options: Optional[dict[str, Any]] = None) -> PreviewJob:
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)
        job_id = f"stub-{seed_for(image_url)}"
        preview_url = self.result_url(image_url)
        logger.info(f"[PREVIEW] Stub preview ready job={job_id} mode={self.stub_mode}")
        return PreviewJob(
            job_id=job_id,
            status=JobStatus.DONE,
            preview_url=preview_url,
            thumb_url=preview_url,
            raw={"stub": True, "stub_mode": self.stub_mode},
        )

    async def poll(self, job_id: str) -> PreviewJob:
        # Stub jobs finish inside submit(); a poll only happens after a restart.
        return PreviewJob(job_id=job_id, status=JobStatus.FAILED, error_message="stub jobs are not pollable")
