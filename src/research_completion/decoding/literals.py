"""
String-literal aware regex helpers

Most repairs only make sense on the structural parts of a JSON-like text.
Patterns compiled with :func:`outside_strings` are tried after a
double-quoted literal alternative, so a scan consumes each complete literal
as a unit and never rewrites text inside one.
"""

from __future__ import annotations

from collections.abc import Callable
import re

# A complete double-quoted literal on a single line, escapes allowed
STRING_LITERAL = r'"(?:[^"\\\n]|\\.)*"'

_STRING_LITERAL_RE = re.compile(STRING_LITERAL)


def outside_strings(pattern: str, flags: int = 0) -> re.Pattern[str]:
    """Compile ``pattern`` behind a literal-skipping alternative.

    The pattern must not define a group named ``literal``.
    """
    return re.compile(rf"(?P<literal>{STRING_LITERAL})|{pattern}", flags)


def sub_outside_strings(
    regex: re.Pattern[str],
    repl: str | Callable[[re.Match[str]], str],
    text: str,
) -> str:
    """Like ``regex.sub`` but leaves matched string literals untouched.

    ``repl`` is either a fixed replacement string (no group references) or a
    callable receiving the match of the non-literal alternative.
    """

    def _replace(match: re.Match[str]) -> str:
        literal = match.group("literal")
        if literal is not None:
            return literal
        if callable(repl):
            return repl(match)
        return repl

    return regex.sub(_replace, text)


def strip_string_literals(text: str) -> str:
    """Blank out string contents so only structure remains."""
    return _STRING_LITERAL_RE.sub('""', text)
