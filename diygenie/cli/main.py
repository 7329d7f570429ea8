from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import httpx
import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from diygenie.api.schemas import ProjectCreate
from diygenie.cli.client import ApiClient
from diygenie.services.plan_normalizer import normalize_plan

DEFAULT_BASE_URL = "http://127.0.0.1:8000/api/v1"

app = typer.Typer(help="DIY Genie CLI")
projects_app = typer.Typer(help="Manage projects")
plan_app = typer.Typer(help="Build plan utilities")
app.add_typer(projects_app, name="projects")
app.add_typer(plan_app, name="plan")

console = Console()


def _client(base_url: str, user_id: str, api_key: Optional[str]) -> ApiClient:
    return ApiClient(base_url, user_id=user_id, api_key=api_key)


def _fail(e: httpx.HTTPError) -> None:
    if isinstance(e, httpx.HTTPStatusError):
        try:
            detail = e.response.json().get("detail")
        except ValueError:
            detail = e.response.text
        console.print(f"[red]Error {e.response.status_code}: {detail}[/red]")
    else:
        console.print(f"[red]Error: {e}[/red]")
    raise typer.Exit(code=1)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
    """Start the DIY Genie API server."""
    console.print(f"[green]Starting DIY Genie at http://{host}:{port}[/green]")
    uvicorn.run(
        "diygenie.main:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def entitlements(
    user_id: str = typer.Option(..., envvar="DIYGENIE_USER_ID", help="Caller user id"),
    base_url: str = typer.Option(DEFAULT_BASE_URL, envvar="DIYGENIE_API_URL", help="API base URL"),
    api_key: Optional[str] = typer.Option(None, envvar="DIYGENIE_API_KEY", help="Service API key"),
):
    """Show tier, quota and preview permission for a user."""
    client = _client(base_url, user_id, api_key)
    try:
        ent = client.entitlements()
    except httpx.HTTPError as e:
        _fail(e)
    finally:
        client.close()
    console.print(
        f"tier=[cyan]{ent.tier}[/cyan] quota={ent.quota} used={ent.used} "
        f"remaining={ent.remaining} previews={'yes' if ent.preview_allowed else 'no'}"
    )


@projects_app.command("list")
def projects_list(
    user_id: str = typer.Option(..., envvar="DIYGENIE_USER_ID", help="Caller user id"),
    base_url: str = typer.Option(DEFAULT_BASE_URL, envvar="DIYGENIE_API_URL", help="API base URL"),
    api_key: Optional[str] = typer.Option(None, envvar="DIYGENIE_API_KEY", help="Service API key"),
):
    """List a user's projects."""
    client = _client(base_url, user_id, api_key)
    try:
        projects = client.list_projects()
    except httpx.HTTPError as e:
        _fail(e)
    finally:
        client.close()

    table = Table(title=f"Projects ({projects.total})")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Status", style="green")
    table.add_column("Preview", style="blue")
    for p in projects.items:
        table.add_row(p.id[:8], p.name, p.status, p.preview_status or "-")
    console.print(table)


@projects_app.command("get")
def projects_get(
    project_id: str = typer.Argument(..., help="Project ID"),
    user_id: str = typer.Option(..., envvar="DIYGENIE_USER_ID", help="Caller user id"),
    base_url: str = typer.Option(DEFAULT_BASE_URL, envvar="DIYGENIE_API_URL", help="API base URL"),
    api_key: Optional[str] = typer.Option(None, envvar="DIYGENIE_API_KEY", help="Service API key"),
):
    """Get project detail."""
    client = _client(base_url, user_id, api_key)
    try:
        detail = client.get_project(project_id)
    except httpx.HTTPError as e:
        _fail(e)
    finally:
        client.close()
    typer.echo(detail.model_dump_json(indent=2))


@projects_app.command("create")
def projects_create(
    name: str = typer.Option(..., help="Project name"),
    goal: Optional[str] = typer.Option(None, help="What you want to achieve"),
    room_type: Optional[str] = typer.Option(None, help="kitchen, bathroom, ..."),
    budget: Optional[str] = typer.Option(None, help="Budget hint"),
    skill_level: Optional[str] = typer.Option(None, help="beginner / intermediate / advanced"),
    user_id: str = typer.Option(..., envvar="DIYGENIE_USER_ID", help="Caller user id"),
    base_url: str = typer.Option(DEFAULT_BASE_URL, envvar="DIYGENIE_API_URL", help="API base URL"),
    api_key: Optional[str] = typer.Option(None, envvar="DIYGENIE_API_KEY", help="Service API key"),
):
    """Create a project."""
    client = _client(base_url, user_id, api_key)
    payload = ProjectCreate(name=name, goal=goal, room_type=room_type, budget=budget, skill_level=skill_level)
    try:
        created = client.create_project(payload)
    except httpx.HTTPError as e:
        _fail(e)
    finally:
        client.close()
    console.print(f"[green]Created project {created.id}[/green] ({created.status})")


@projects_app.command("preview")
def projects_preview(
    project_id: str = typer.Argument(..., help="Project ID"),
    user_id: str = typer.Option(..., envvar="DIYGENIE_USER_ID", help="Caller user id"),
    base_url: str = typer.Option(DEFAULT_BASE_URL, envvar="DIYGENIE_API_URL", help="API base URL"),
    api_key: Optional[str] = typer.Option(None, envvar="DIYGENIE_API_KEY", help="Service API key"),
):
    """Request a preview; poll with `projects get`."""
    client = _client(base_url, user_id, api_key)
    try:
        accepted = client.request_preview(project_id)
    except httpx.HTTPError as e:
        _fail(e)
    finally:
        client.close()
    console.print(f"[green]Preview requested[/green] operation={accepted['operation_id']} status={accepted['status']}")


@plan_app.command("normalize")
def plan_normalize(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Raw plan JSON file"),
):
    """Normalize a raw plan document offline and print the result."""
    plan = normalize_plan(path.read_text(encoding="utf-8"))
    typer.echo(json.dumps(plan, indent=2))


if __name__ == "__main__":
    app()
