"""
Resilient JSON decoding of model output

Strategies, each tried only when the previous one failed:

1. strict parse of the whole text
2. greedy ``{...}`` span (after dropping any thinking block), cleaned up
3. greedy ``[...]`` span, cleaned up, always returned as a list
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from ..constants import ERROR_PREVIEW_CHARS, THINK_CLOSE, THINK_OPEN
from ..exceptions import ResilientJSONDecodeError
from .pipeline import run_cleanup_pipeline
from .types import ParsingResult

log = logging.getLogger(__name__)

INVALID_JSON_MESSAGE = "Invalid JSON after all extraction attempts"

_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")
_ARRAY_SPAN = re.compile(r"\[[\s\S]*\]")


def strip_thinking(text: str) -> str:
    """Keep only what follows the last closed thinking block."""
    if THINK_OPEN in text and THINK_CLOSE in text:
        end = text.rfind(THINK_CLOSE)
        return text[end + len(THINK_CLOSE) :].strip()
    return text


def try_decode(text: str) -> ParsingResult:
    """Decode ``text`` with every strategy and report which one worked."""
    try:
        return ParsingResult(
            success=True,
            parsed_data=json.loads(text),
            confidence=1.0,
            method="direct",
        )
    except json.JSONDecodeError as e:
        errors = [f"direct: {e}"]
    log.debug("Direct JSON parse failed, trying extraction")

    clean_text = strip_thinking(text)

    object_match = _OBJECT_SPAN.search(clean_text)
    if object_match:
        candidate = run_cleanup_pipeline(object_match.group(0))
        try:
            return ParsingResult(
                success=True,
                parsed_data=json.loads(candidate),
                confidence=0.8,
                method="object_repair",
                errors=errors,
            )
        except json.JSONDecodeError as e:
            errors.append(f"object_repair: {e}")
            log.debug(
                "JSON object extraction failed: %s; candidate: %s",
                e,
                candidate[:ERROR_PREVIEW_CHARS],
            )

    array_match = _ARRAY_SPAN.search(clean_text)
    if array_match:
        candidate = run_cleanup_pipeline(array_match.group(0))
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError as e:
            errors.append(f"array_repair: {e}")
            log.debug(
                "JSON array extraction failed: %s; candidate: %s",
                e,
                candidate[:ERROR_PREVIEW_CHARS],
            )
        else:
            return ParsingResult(
                success=True,
                parsed_data=parsed if isinstance(parsed, list) else [parsed],
                confidence=0.7,
                method="array_repair",
                errors=errors,
            )

    return ParsingResult(
        success=False,
        parsed_data=None,
        confidence=0.0,
        method="exhausted",
        errors=errors,
    )


def decode_resilient_json(text: str) -> Any:
    """Parse model output into structured data despite common malformations.

    Raises:
        ResilientJSONDecodeError: When no strategy yields valid JSON. It is a
            ``json.JSONDecodeError``, so existing handlers keep working.
    """
    result = try_decode(text)
    if result.success:
        return result.parsed_data
    log.debug("All JSON strategies failed: %s", "; ".join(result.errors))
    raise ResilientJSONDecodeError(INVALID_JSON_MESSAGE, text, 0)
