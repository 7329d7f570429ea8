"""
Remote image-service preview provider.

Talks to a job-based room redesign API:

    POST {base_url}/jobs        -> {"job_id": ...} or {"preview_url": ...}
    GET  {base_url}/jobs/{id}   -> {"status": ..., "preview_url": ..., "thumb_url": ...}
"""
import logging
from typing import Any, Optional

import httpx

from ..base import JobStatus, PreviewJob, PreviewProvider, ProviderMode
from ..errors import ProviderConfigError, ProviderError, ProviderTimeoutError

logger = logging.getLogger(__name__)

# Remote vocabularies vary; map everything onto JobStatus
STATUS_MAP = {
    "queued": JobStatus.QUEUED,
    "pending": JobStatus.QUEUED,
    "submitted": JobStatus.QUEUED,
    "processing": JobStatus.PROCESSING,
    "running": JobStatus.PROCESSING,
    "in_progress": JobStatus.PROCESSING,
    "done": JobStatus.DONE,
    "ready": JobStatus.DONE,
    "completed": JobStatus.DONE,
    "succeeded": JobStatus.DONE,
    "failed": JobStatus.FAILED,
    "error": JobStatus.FAILED,
    "cancelled": JobStatus.FAILED,
}


def _parse_status(value: Any) -> JobStatus:
    status = STATUS_MAP.get(str(value or "").strip().lower())
    if status is None:
        raise ProviderError(f"Unknown job status from image service: {value!r}")
    return status


class Decor8PreviewProvider(PreviewProvider):
    """
    Adapter for the remote image-generation service.

    Example:
        provider = Decor8PreviewProvider(base_url="https://api.example.com/v1", api_key="...")
        job = await provider.submit("https://cdn/room.jpg", {"prompt": "scandinavian"})
        job = await provider.poll(job.job_id)
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url:
            raise ProviderConfigError("decor8_base_url is required for the remote preview provider")
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    @property
    def name(self) -> str:
        return "decor8"

    @property
    def mode(self) -> ProviderMode:
        return ProviderMode.LIVE

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        try:
            resp = await self._http.request(method, path, **kwargs)
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"Image service timed out on {method} {path}") from e
        except httpx.HTTPStatusError as e:
            raise ProviderError(f"Image service returned {e.response.status_code} on {method} {path}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(f"Image service request failed on {method} {path}: {e}") from e
        if not isinstance(data, dict):
            raise ProviderError("Image service returned a non-object response")
        return data

    async def submit(self, image_url: str, options: Optional[dict[str, Any]] = None) -> PreviewJob:
        options = options or {}
        payload = {
            "image_url": image_url,
            "prompt": options.get("prompt") or "",
            "room_type": options.get("room_type"),
            "design_style": options.get("design_style"),
            "scale_px_per_in": options.get("scale_px_per_in"),
            "dimensions": options.get("dimensions"),
        }
        data = await self._request("POST", "/jobs", json=payload)

        preview_url = data.get("preview_url")
        job_id = data.get("job_id") or data.get("jobId") or data.get("id")
        if preview_url:
            return PreviewJob(
                job_id=str(job_id or ""),
                status=JobStatus.DONE,
                preview_url=preview_url,
                thumb_url=data.get("thumb_url"),
                raw=data,
            )
        if not job_id:
            raise ProviderError("Image service response had neither job_id nor preview_url")
        logger.info(f"[PREVIEW] Submitted remote job {job_id}")
        return PreviewJob(job_id=str(job_id), status=_parse_status(data.get("status") or "queued"), raw=data)

    async def poll(self, job_id: str) -> PreviewJob:
        data = await self._request("GET", f"/jobs/{job_id}")
        status = _parse_status(data.get("status"))
        preview_url = data.get("preview_url")
        if status is JobStatus.DONE and not preview_url:
            raise ProviderError(f"Image service reported job {job_id} done without a preview_url")
        return PreviewJob(
            job_id=job_id,
            status=status,
            preview_url=preview_url if status is JobStatus.DONE else None,
            thumb_url=data.get("thumb_url"),
            error_message=data.get("error"),
            raw=data,
        )

    async def aclose(self) -> None:
        await self._http.aclose()
