from typing import Any, Dict, Optional

import httpx

from diygenie.api.schemas import EntitlementResponse, ProjectCreate, ProjectDetail, ProjectList


class ApiClient:
    """Minimal synchronous API client for the DIY Genie CLI."""

    def __init__(
        self,
        base_url: str,
        user_id: str,
        api_key: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {"X-User-Id": user_id}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._http = httpx.Client(base_url=self.base_url, headers=headers, timeout=30.0, transport=transport)

    def list_projects(self, limit: int = 100) -> ProjectList:
        resp = self._http.get("/projects", params={"limit": limit})
        resp.raise_for_status()
        return ProjectList.model_validate(resp.json())

    def get_project(self, project_id: str) -> ProjectDetail:
        resp = self._http.get(f"/projects/{project_id}")
        resp.raise_for_status()
        return ProjectDetail.model_validate(resp.json())

    def create_project(self, payload: ProjectCreate) -> ProjectDetail:
        resp = self._http.post("/projects", json=payload.model_dump(exclude_none=True))
        resp.raise_for_status()
        return ProjectDetail.model_validate(resp.json())

    def entitlements(self) -> EntitlementResponse:
        resp = self._http.get("/me/entitlements")
        resp.raise_for_status()
        return EntitlementResponse.model_validate(resp.json())

    def request_preview(self, project_id: str) -> Dict[str, Any]:
        resp = self._http.post(f"/projects/{project_id}/preview")
        resp.raise_for_status()
        return resp.json()

    def close(self) -> None:
        self._http.close()
