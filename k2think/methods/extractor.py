"""Pull a JSON object out of free-form model output.

Attempts, first success wins:
1. a ```json fenced block
2. the widest {...} span in the text
3. the whole text
Failures come back as an error dict carrying the raw response; nothing
here raises.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

NO_JSON_ERROR = "no JSON found in response"
PARSE_ERROR = "JSON parse failure"
NO_JSON_SUGGESTION = (
    "Tighten the system prompt so the model answers with a single JSON object, "
    "optionally inside a ```json fenced block."
)
VALIDATION_ERRORS_KEY = "_validation_errors"

_FENCED_JSON_RE = re.compile(r"```json\s*([\s\S]*?)\s*```")
_BRACE_SPAN_RE = re.compile(r"\{[\s\S]*\}")


def _locate_json(text: str) -> str | None:
    fenced = _FENCED_JSON_RE.search(text)
    if fenced:
        return fenced.group(1)
    span = _BRACE_SPAN_RE.search(text)
    if span:
        return span.group(0)
    return None


def validate_required(data: Any, required_fields: list[str]) -> list[str]:
    """Presence check only; types and nested shapes are not inspected."""
    if not isinstance(data, dict):
        return [f"missing required field: {name}" for name in required_fields]
    return [f"missing required field: {name}" for name in required_fields if name not in data]


def extract_json(text: str, required_fields: list[str] | None = None) -> Any:
    """Parse the JSON payload embedded in text.

    Returns the parsed value, or an error dict with "error" and
    "raw_response". When required_fields is given and a dict was parsed,
    missing names are listed under "_validation_errors".
    """
    candidate = _locate_json(text)
    if candidate is not None:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError as e:
            logger.debug("JSON candidate failed to parse: %s", e)
            return {"error": PARSE_ERROR, "details": str(e), "raw_response": text}
    else:
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            return {
                "error": NO_JSON_ERROR,
                "raw_response": text,
                "suggestion": NO_JSON_SUGGESTION,
            }

    if required_fields and isinstance(parsed, dict):
        errors = validate_required(parsed, required_fields)
        if errors:
            logger.info("Extracted JSON is missing fields: %s", ", ".join(errors))
            parsed[VALIDATION_ERRORS_KEY] = errors
    return parsed


def is_extraction_error(result: Any) -> bool:
    return isinstance(result, dict) and result.get("error") in (NO_JSON_ERROR, PARSE_ERROR)
