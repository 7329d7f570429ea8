"""
Tests for the command-line client.
"""
import json

import httpx
import pytest
from typer.testing import CliRunner

from diygenie.cli import main as cli
from diygenie.cli.client import ApiClient

runner = CliRunner()

PROJECT = {
    "id": "8f14e45f-ceea-467f-a0e6-7c1d3a5b9e21",
    "user_id": "user-1",
    "name": "Kitchen shelves",
    "status": "draft",
    "preview_status": None,
    "created_at": "2026-01-05T10:00:00",
}


def _routes(request: httpx.Request) -> httpx.Response:
    if request.headers.get("x-user-id") != "user-1":
        return httpx.Response(401, json={"detail": "Missing X-User-Id header"})
    path = request.url.path
    if request.method == "GET" and path == "/api/v1/projects":
        return httpx.Response(200, json={"items": [PROJECT], "total": 1})
    if request.method == "GET" and path == f"/api/v1/projects/{PROJECT['id']}":
        return httpx.Response(200, json=PROJECT)
    if request.method == "POST" and path == "/api/v1/projects":
        body = json.loads(request.content)
        return httpx.Response(201, json={**PROJECT, "name": body["name"]})
    if request.method == "POST" and path.endswith("/preview"):
        return httpx.Response(403, json={"detail": "Previews require a paid plan", "error": "preview_not_allowed"})
    if request.method == "GET" and path == "/api/v1/me/entitlements":
        return httpx.Response(200, json={
            "tier": "free", "quota": 2, "used": 1, "remaining": 1, "preview_allowed": False,
        })
    return httpx.Response(404, json={"detail": "not found"})


@pytest.fixture(autouse=True)
def mock_api(monkeypatch):
    def client(base_url, user_id, api_key):
        return ApiClient(base_url, user_id=user_id, api_key=api_key, transport=httpx.MockTransport(_routes))

    monkeypatch.setattr(cli, "_client", client)
    # Wide console so rich does not wrap table cells
    monkeypatch.setattr(cli.console, "width", 200)


def test_projects_list():
    result = runner.invoke(cli.app, ["projects", "list", "--user-id", "user-1"])
    assert result.exit_code == 0, result.output
    assert "Projects (1)" in result.output
    assert "Kitchen shelves" in result.output
    assert "8f14e45f" in result.output


def test_projects_get():
    result = runner.invoke(cli.app, ["projects", "get", PROJECT["id"], "--user-id", "user-1"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["name"] == "Kitchen shelves"


def test_projects_create():
    result = runner.invoke(cli.app, ["projects", "create", "--name", "Garage pegboard", "--user-id", "user-1"])
    assert result.exit_code == 0, result.output
    assert "Created project" in result.output


def test_user_id_from_environment():
    result = runner.invoke(cli.app, ["entitlements"], env={"DIYGENIE_USER_ID": "user-1"})
    assert result.exit_code == 0, result.output
    assert "remaining=1" in result.output
    assert "previews=no" in result.output


def test_api_error_exits_nonzero():
    result = runner.invoke(cli.app, ["projects", "preview", PROJECT["id"], "--user-id", "user-1"])
    assert result.exit_code == 1
    assert "403" in result.output
    assert "paid plan" in result.output


def test_plan_normalize(tmp_path):
    raw = tmp_path / "plan.json"
    raw.write_text(json.dumps({
        "title": "Bench",
        "steps": [{"order": 2, "text": "Assemble"}, {"order": 1, "text": "Cut"}],
        "tools": ["Saw"],
    }))
    result = runner.invoke(cli.app, ["plan", "normalize", str(raw)])
    assert result.exit_code == 0, result.output
    plan = json.loads(result.output)
    assert [s["text"] for s in plan["steps"]] == ["Cut", "Assemble"]
    assert plan["tools"] == [{"name": "Saw"}]
