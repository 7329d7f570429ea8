"""
Plan normalization.

Providers (and older clients) hand back plans in many loose shapes. Everything
stored in `Project.plan_json` goes through `normalize_plan`, which produces the
canonical document:

    {
        "overview":  {"title", "est_time", "est_cost", "skill", "notes"},
        "materials": [{"name", "qty", "notes"}],
        "tools":     [{"name"}],
        "cuts":      [{"item", "size", "qty"}],
        "steps":     [{"order", "text"}],   # ascending by order, stable
    }

The function is pure and idempotent: normalizing a normalized plan returns an
equal document.
"""
import json
import math
from typing import Any, Optional, TypedDict

OVERVIEW_FIELDS = ("title", "est_time", "est_cost", "skill", "notes")


class NormalizedPlan(TypedDict):
    overview: dict[str, Any]
    materials: list[dict[str, Any]]
    tools: list[dict[str, Any]]
    cuts: list[dict[str, Any]]
    steps: list[dict[str, Any]]


def _clean(value: Any) -> Any:
    """Strip strings; empty strings become None."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _first(entry: dict, *keys: str) -> Any:
    for key in keys:
        value = _clean(entry.get(key))
        if value is not None:
            return value
    return None


def _as_sequence(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _as_text(value: Any) -> Optional[str]:
    value = _clean(value)
    if value is None or isinstance(value, (dict, list, tuple, bool)):
        return None
    return str(value).strip() or None


def _as_number(value: Any) -> Optional[float | int]:
    """Coerce to int/float; None when absent or unparseable (never 0 by default)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return int(number) if number.is_integer() else number


def _overview(raw: dict) -> dict[str, Any]:
    nested = raw.get("overview") if isinstance(raw.get("overview"), dict) else {}
    overview = {}
    for field in OVERVIEW_FIELDS:
        value = _clean(nested.get(field))
        if value is None:
            value = _clean(raw.get(field))
        overview[field] = value
    return overview


def _materials(value: Any) -> list[dict[str, Any]]:
    materials = []
    for entry in _as_sequence(value):
        if isinstance(entry, str):
            entry = {"name": entry}
        if not isinstance(entry, dict):
            continue
        name = _as_text(_first(entry, "name", "item"))
        if not name:
            continue
        materials.append({
            "name": name,
            "qty": _first(entry, "qty", "quantity", "amount"),
            "notes": _first(entry, "notes"),
        })
    return materials


def _tools(value: Any) -> list[dict[str, Any]]:
    tools = []
    for entry in _as_sequence(value):
        if isinstance(entry, str):
            entry = {"name": entry}
        if not isinstance(entry, dict):
            continue
        name = _as_text(_first(entry, "name", "tool"))
        if name:
            tools.append({"name": name})
    return tools


def _cuts(value: Any) -> list[dict[str, Any]]:
    cuts = []
    for entry in _as_sequence(value):
        if not isinstance(entry, dict):
            continue
        item = _as_text(entry.get("item"))
        if not item:
            continue
        cuts.append({
            "item": item,
            "size": _first(entry, "size", "dimensions"),
            "qty": _as_number(entry.get("qty")),
        })
    return cuts


def _steps(value: Any) -> list[dict[str, Any]]:
    steps = []
    for position, entry in enumerate(_as_sequence(value), start=1):
        if isinstance(entry, str):
            entry = {"text": entry}
        if not isinstance(entry, dict):
            continue
        text = _as_text(_first(entry, "text", "step"))
        if not text:
            continue
        order = _as_number(entry.get("order"))
        steps.append({"order": position if order is None else order, "text": text})
    # sorted() is stable: equal orders keep their input order
    return sorted(steps, key=lambda step: step["order"])


def normalize_plan(raw: Any) -> NormalizedPlan:
    """Coerce a loosely-shaped plan into the canonical plan document."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            raw = {}
    if not isinstance(raw, dict):
        raw = {}
    return {
        "overview": _overview(raw),
        "materials": _materials(raw.get("materials")),
        "tools": _tools(raw.get("tools")),
        "cuts": _cuts(raw.get("cuts")),
        "steps": _steps(raw.get("steps")),
    }
