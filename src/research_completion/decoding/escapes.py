"""
Repair of "Bad escaped character" problems in model-generated JSON

No content rules: only the escape syntax is inspected.
"""

import re

_TRAILING_BACKSLASHES = re.compile(r"\\+\Z")
# A backslash and what it escapes; \uXXXX is taken as one unit
_ESCAPE_SEQUENCE = re.compile(r"\\(u[0-9a-fA-F]{4}|[\s\S])")
# An even run of backslashes before a quote that does not end a value; an
# odd run already escapes the quote
_OVER_ESCAPED_QUOTE = re.compile(r'(?<!\\)(?:\\\\)+"(?!\s*[,:}\]]|\s*\Z)')
_ASCII_ALNUM = re.compile(r"[A-Za-z0-9]")
_VALID_SIMPLE_ESCAPES = frozenset('"\\/bfnrt')


def _repair_escape(match: re.Match[str]) -> str:
    sequence = match.group(1)
    if len(sequence) == 5 or sequence in _VALID_SIMPLE_ESCAPES:
        return match.group(0)
    if sequence == "u":
        # \u without four hex digits
        return "\\\\u"
    if _ASCII_ALNUM.fullmatch(sequence):
        return "\\\\" + sequence
    return match.group(0)


def repair_escape_characters(text: str) -> str:
    """Make backslash escapes acceptable to a strict JSON parser.

    - drops a run of backslashes at the very end of the text
    - doubles the backslash of an invalid escape followed by a letter or
      digit (``\\d`` -> ``\\\\d``), including a malformed ``\\u``
    - leaves other invalid escapes alone, since doubling would not help
    - collapses an even backslash run before ``"`` inside a value to a single
      escaped quote
    """
    text = _TRAILING_BACKSLASHES.sub("", text)
    text = _ESCAPE_SEQUENCE.sub(_repair_escape, text)
    return _OVER_ESCAPED_QUOTE.sub(r'\\"', text)
