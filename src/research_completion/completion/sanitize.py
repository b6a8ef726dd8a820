"""
Light-weight cleanup of raw responses and recovery of content from errors
"""

from __future__ import annotations

import logging
import re

log = logging.getLogger(__name__)

# Emphatic filler that small models fall into, dropped to end of line
_FILLER_RUN = re.compile(r"\b(really|very)(?:\s+\1\b){2,}.*", re.IGNORECASE)
_TRAILING_ELLIPSIS = re.compile(r"\.\.\.[\s.]*$")
_LONE_OPEN_BRACE = re.compile(r"^\s*\{\s*$")

_CONTENT_FIELD = re.compile(r'"content"\s*:\s*"([^"]+)"', re.IGNORECASE)
_PARTIAL_JSON_TAIL = re.compile(r"\{[\s\S]*$")
_QUOTED_VALUE = re.compile(r'"([^"]*)"')
_CONTENT_KEY = '"content"'

_CLOSERS = {"{": "}", "[": "]"}


def sanitize_response(text: str) -> str:
    """Trim filler and trailing noise, and close a dangling leading bracket.

    Does no structural repair beyond appending the closer for a response that
    starts with ``{`` or ``[`` but does not end with its pair.
    """
    cleaned = text.strip()
    cleaned = _FILLER_RUN.sub("", cleaned)
    cleaned = _TRAILING_ELLIPSIS.sub("", cleaned)
    cleaned = _LONE_OPEN_BRACE.sub("", cleaned)
    cleaned = cleaned.rstrip()

    if cleaned:
        closer = _CLOSERS.get(cleaned[0])
        if closer and not cleaned.endswith(closer):
            cleaned += closer

    return cleaned


def extract_partial_content(error: BaseException) -> str | None:
    """Recover the ``content`` string embedded in an error message.

    Model servers often put the partial payload into the error text when they
    fail mid-response. Returns ``None`` when no content can be found.
    """
    try:
        message = str(error)

        content_match = _CONTENT_FIELD.search(message)
        if content_match:
            return content_match.group(1).replace("\\n", "\n")

        tail_match = _PARTIAL_JSON_TAIL.search(message)
        if tail_match:
            partial = tail_match.group(0)
            content_start = partial.find(_CONTENT_KEY)
            if content_start != -1:
                # Skip the key and the separator that follows it
                after_key = partial[content_start + len(_CONTENT_KEY) + 1 :]
                value_match = _QUOTED_VALUE.search(after_key)
                if value_match:
                    return value_match.group(1).replace("\\n", "\n")
    except Exception as e:
        log.warning("Failed to extract partial content from error: %s", e)
    return None
