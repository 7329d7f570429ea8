import json
import re
from typing import Optional

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def extract_json_object(text: str) -> Optional[dict]:
    """
    Pull the first JSON object out of an LLM reply.

    Accepts a bare object, one wrapped in a ```json fence, or an object embedded
    in surrounding prose. Returns None if nothing parses to a dict.
    """
    if not text:
        return None
    candidates = [text.strip()]
    candidates.extend(m.strip() for m in _FENCE_RE.findall(text))
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])
    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(value, dict):
            return value
    return None
