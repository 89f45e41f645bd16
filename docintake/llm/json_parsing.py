import json
from typing import Any

from docintake.llm.exceptions import LlmResponseFormatError


def parse_json_object(raw: str) -> dict[str, Any]:
    """Parse a model answer into a JSON object.

    Accepts answers wrapped in Markdown code fences or surrounded by prose.

    Raises:
        LlmResponseFormatError: if no JSON object can be decoded.
    """
    cleaned = _strip_code_fence(raw.strip())
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        parsed = _decode_embedded_object(cleaned)

    if not isinstance(parsed, dict):
        raise LlmResponseFormatError("JSON response must be an object")
    return parsed


def _strip_code_fence(text: str) -> str:
    if not text.startswith("```"):
        return text
    lines = text.splitlines()
    if lines and lines[0].startswith("```"):
        lines = lines[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    return "\n".join(lines)


def _decode_embedded_object(text: str) -> Any:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise LlmResponseFormatError("No JSON object found in response")
    try:
        return json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise LlmResponseFormatError(f"Invalid JSON response: {exc}") from exc
