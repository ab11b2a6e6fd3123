"""
Pull the first JSON object out of free-form reasoning text.
"""

import json
from typing import Any, Dict

from shared.errors import InvalidJsonError, NoJsonFoundError, UnbalancedJsonError


def find_json_object(text: str) -> str:
    """
    Return the substring of the first balanced {...} block.

    Scanning starts at the first "{" and tracks string literals, so braces
    inside strings do not count.

    Raises:
        NoJsonFoundError: If text has no "{"
        UnbalancedJsonError: If the block never closes
    """
    start = text.find("{")
    if start == -1:
        raise NoJsonFoundError("No JSON found in response")

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
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:pos + 1]

    raise UnbalancedJsonError("Unbalanced braces in JSON response")


def extract_json_object(text: str) -> Dict[str, Any]:
    """Parse the first balanced JSON object in text."""
    candidate = find_json_object(text)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise InvalidJsonError(f"Invalid JSON in response: {e.msg} at position {e.pos}") from e
    if not isinstance(data, dict):
        raise InvalidJsonError("Response JSON is not an object")
    return data
