"""Pull structured data out of free-form model output.

Local models wrap JSON in markdown fences, prefix it with prose, or emit a
``<think>...</think>`` reasoning block first. These helpers peel those layers
off; callers decide what to fall back to when parsing still fails.
"""

import json
import re

THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"

_JSON_FENCE_RE = re.compile(r"```json\s*([\s\S]*?)\s*```")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def strip_reasoning(text: str) -> str:
    """Remove a leading reasoning block.

    Only strips when ``<think>`` appears before any JSON fence or ``{``;
    a ``<think>`` tag inside real content (e.g. the user asked about it) is
    kept.
    """
    if not text:
        return text or ""

    think_start = text.find(THINK_OPEN)
    if think_start == -1:
        return text
    fence_start = text.find("```json")
    brace_start = text.find("{")
    if fence_start != -1 and fence_start < think_start:
        return text
    if brace_start != -1 and brace_start < think_start:
        return text

    cleaned = text
    think_end = cleaned.find(THINK_CLOSE)
    if think_end != -1:
        cleaned = cleaned[think_end + len(THINK_CLOSE):]

    match = _JSON_FENCE_RE.search(cleaned)
    if match:
        cleaned = match.group(1)
    return cleaned.strip()


def _unfence(text: str) -> str:
    text = text.strip()
    if "```json" in text:
        text = text.split("```json", 1)[1].split("```", 1)[0].strip()
    elif "```" in text:
        parts = text.split("```")
        if len(parts) >= 2:
            text = parts[1].strip()
    return text


def extract_json(text: str) -> dict:
    """Parse the first JSON object embedded in ``text``.

    Raises ValueError when no object can be decoded.
    """
    if not text:
        raise ValueError("Empty response")

    candidate = _unfence(text)
    match = _OBJECT_RE.search(candidate)
    if match:
        candidate = match.group(0)

    try:
        result = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise ValueError(f"No JSON object in response: {exc}") from exc
    if not isinstance(result, dict):
        raise ValueError("Response JSON is not an object")
    return result


def extract_json_array(text: str) -> list:
    """Parse a JSON array embedded in ``text`` (raises ValueError)."""
    if not text:
        raise ValueError("Empty response")

    candidate = _unfence(text)
    match = _ARRAY_RE.search(candidate)
    if match:
        candidate = match.group(0)

    try:
        result = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise ValueError(f"No JSON array in response: {exc}") from exc
    if not isinstance(result, list):
        raise ValueError("Response JSON is not an array")
    return result
