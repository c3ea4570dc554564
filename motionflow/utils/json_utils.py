"""
Helpers for pulling JSON out of free-form model output.

Models often wrap JSON in prose or ```json fences; these helpers locate the
first balanced array/object and parse it.
"""
import json
from typing import Any, Optional


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` (or bare ```) fence if present."""
    text = (text or "").strip()
    if "```json" in text:
        return text.split("```json", 1)[1].split("```", 1)[0].strip()
    if text.startswith("```"):
        parts = text.split("```")
        if len(parts) >= 3:
            return parts[1].strip()
    return text


def extract_balanced(text: str, opener: str = "[", closer: str = "]") -> Optional[str]:
    """
    Return the first balanced ``opener ... closer`` substring of ``text``.

    Brackets inside JSON string literals are ignored.

    Args:
        text: Raw model output
        opener: Opening bracket character
        closer: Matching closing bracket character

    Returns:
        The balanced substring, or None if there is none
    """
    if not text:
        return None
    start = text.find(opener)
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for pos in range(start, len(text)):
            char = text[pos]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == opener:
                depth += 1
            elif char == closer:
                depth -= 1
                if depth == 0:
                    return text[start:pos + 1]
        # unbalanced from this opener, try the next one
        start = text.find(opener, start + 1)
    return None


def parse_json_array(text: str) -> Optional[list]:
    """Parse the first balanced JSON array in ``text``; None if absent or invalid."""
    candidate = extract_balanced(strip_code_fences(text), "[", "]")
    if candidate is None:
        return None
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, list) else None


def parse_json_object(text: str) -> Optional[dict]:
    """Parse the first balanced JSON object in ``text``; None if absent or invalid."""
    candidate = extract_balanced(strip_code_fences(text), "{", "}")
    if candidate is None:
        return None
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def coerce_tool_input(raw: Any) -> Optional[dict]:
    """Tool call arguments may arrive as a dict or as a JSON string."""
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        return parse_json_object(raw)
    return None
