"""
Repair of element separation in arrays and truncated trailing elements

Targets the "Expected ',' or ']' after array element" family of parse errors:
missing commas between objects or strings, strings cut off at the end of a
line, and objects left open when the model stopped early.
"""

from __future__ import annotations

import logging
import re

from .literals import (
    STRING_LITERAL,
    outside_strings,
    strip_string_literals,
    sub_outside_strings,
)

log = logging.getLogger(__name__)

_ADJACENT_OBJECTS = outside_strings(r"\}\s*\{")
# Every literal, plus the whitespace after it when another literal follows
_ADJACENT_STRINGS = re.compile(rf'(?P<first>{STRING_LITERAL})(?P<gap>\s+(?="))?')
_TRUNCATED_STRING = outside_strings(
    r'(?P<sep>:\s*)"(?P<body>[^"\n]+?)(?:\.\.\.)?[ \t]*$', re.MULTILINE
)
_COMMA_RUN = outside_strings(r",(?:\s*,)+")
_COMMA_BEFORE_CLOSE = outside_strings(r",(?P<ws>\s*)(?P<close>[}\]])")


def _separate_adjacent_strings(text: str) -> str:
    def _replace(match: re.Match[str]) -> str:
        if match.group("gap"):
            return f'{match.group("first")}, '
        return match.group("first")

    return _ADJACENT_STRINGS.sub(_replace, text)


def _close_truncated_strings(text: str) -> str:
    def _close(match: re.Match[str]) -> str:
        body = match.group("body").rstrip().rstrip("\\")
        return f'{match.group("sep")}"{body}"'

    return sub_outside_strings(_TRUNCATED_STRING, _close, text)


def _close_open_braces(text: str) -> str:
    structure = strip_string_literals(text)
    missing = structure.count("{") - structure.count("}")
    if missing > 0:
        return text + "}" * missing
    return text


def repair_array_elements(text: str) -> str:
    """Fix separators between elements and close truncated trailing ones.

    Never raises: if anything goes wrong the input is returned unchanged so
    the rest of the cleanup pipeline still runs.
    """
    try:
        fixed = sub_outside_strings(_ADJACENT_OBJECTS, "},{", text)
        # Close cut-off strings first so they can take part in separation
        fixed = _close_truncated_strings(fixed)
        fixed = _separate_adjacent_strings(fixed)
        fixed = _close_open_braces(fixed)
        fixed = sub_outside_strings(_COMMA_RUN, ",", fixed)
        fixed = sub_outside_strings(
            _COMMA_BEFORE_CLOSE, lambda m: m.group("ws") + m.group("close"), fixed
        )
    except Exception as e:
        log.warning("Array element repair failed, returning original: %s", e)
        return text
    return fixed
