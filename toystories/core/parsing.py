"""Helpers for reading JSON out of free-form model responses."""

import json
import re

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence markers the model sometimes adds."""
    return _FENCE_RE.sub("", text or "").strip()


def load_json_object(text: str) -> dict:
    """
    Parse a model response as a single JSON object.

    Raises:
        ValueError: If the text is not valid JSON or not an object
    """
    parsed = json.loads(strip_code_fences(text))
    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed
