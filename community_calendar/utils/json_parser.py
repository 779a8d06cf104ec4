"""
JSON parsing utilities for extracting structured data from LLM responses.

Handles JSON embedded in markdown code blocks or surrounded by other text.
"""

import json
import re
from typing import Any

_FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]+?)\s*```")


def extract_json_from_llm_response(text: str) -> Any | None:
    """
    Extract the first JSON value from an LLM response.

    Looks inside a fenced code block when one is present, skips any prose
    before the first ``{`` or ``[`` and any trailing text after the last
    closing bracket. Returns None when nothing parses.
    """
    if not text or not text.strip():
        return None

    match = _FENCED_BLOCK_RE.search(text)
    json_str = match.group(1).strip() if match else text.strip()

    starts = [i for i in (json_str.find("{"), json_str.find("[")) if i != -1]
    if not starts:
        return None
    json_str = json_str[min(starts) :]

    try:
        return json.loads(json_str)
    except json.JSONDecodeError:
        pass

    end_index = max(json_str.rfind("}"), json_str.rfind("]"))
    if end_index == -1:
        return None

    try:
        return json.loads(json_str[: end_index + 1])
    except json.JSONDecodeError:
        return None


def extract_events_payload(text: str) -> dict[str, Any] | None:
    """
    Return the response as an ``{"events": [...]}`` object.

    A bare JSON array is accepted and wrapped, since some models drop the
    wrapper object even in JSON mode.
    """
    parsed = extract_json_from_llm_response(text)
    if isinstance(parsed, list):
        return {"events": parsed}
    if isinstance(parsed, dict):
        return parsed
    return None
