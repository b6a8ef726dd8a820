"""
Text repairs for JSON-like model output

Each repair is a pure ``str -> str`` function addressing one malformation
small models commonly produce. They are chained in a fixed order by
:mod:`research_completion.decoding.pipeline`; several assume the ones before
them already ran (quote normalization precedes single-quote conversion, for
instance).
"""

import re

from .literals import outside_strings, sub_outside_strings

_SMART_QUOTES = str.maketrans(
    {
        "\u201c": '"',
        "\u201d": '"',
        "\u201e": '"',
        "\u201f": '"',
        "\u2018": "'",
        "\u2019": "'",
        "\u201a": "'",
        "\u201b": "'",
    }
)

_TRAILING_COMMA = outside_strings(r",(?P<ws>\s*)(?P<close>[}\]])")

# : "a"b"c"  where the value is followed by a delimiter
_INNER_QUOTES = re.compile(
    r'(?P<sep>:\s*)"(?P<head>(?:[^"\\\n]|\\.)*)"'
    r'(?P<middle>(?:[^"\\,}\]\n]|\\.)*)"'
    r'(?P<tail>(?:[^"\\,}\]\n]|\\.)*)"(?=\s*[,}\]])'
)

# "//" not preceded by ":" so URLs in bare values survive
_LINE_COMMENT = outside_strings(r"(?<![:\w])//[^\n]*")
_BLOCK_COMMENT = outside_strings(r"/\*[\s\S]*?\*/")

_FENCE_START = re.compile(r"^\s*```(?:json)?[ \t]*\n?", re.IGNORECASE)
_FENCE_END = re.compile(r"\n?[ \t]*```\s*$")

_BARE_KEY = outside_strings(
    r"(?P<lead>[{,\n]\s*)(?P<key>[A-Za-z_][\w\-]*)(?P<gap>\s*):"
)
_BARE_WORD = outside_strings(
    r"(?P<sep>:\s*)(?!(?:true|false|null)\b)(?P<word>[A-Za-z_][A-Za-z0-9_]*)(?=\s*[,}\]])"
)

_SINGLE_QUOTED_KEY = outside_strings(r"'(?P<key>[A-Za-z0-9_]+)'\s*:")
_SINGLE_QUOTED_VALUE = outside_strings(r":\s*'(?P<value>[^'\n]*)'")

_BARE_VALUE = outside_strings(
    r"(?P<sep>:\s*)(?P<value>[^\s\"'\[\]{},][^\[\]{},\n]*?)(?=\s*[,}\]])"
)
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")
_JSON_LITERALS = frozenset({"true", "false", "null"})


def normalize_smart_quotes(text: str) -> str:
    return text.translate(_SMART_QUOTES)


def remove_trailing_commas(text: str) -> str:
    """``{"a": 1,}`` -> ``{"a": 1}``"""
    return sub_outside_strings(
        _TRAILING_COMMA, lambda m: m.group("ws") + m.group("close"), text
    )


def escape_inner_quotes(text: str) -> str:
    """Best-effort escape of quotes embedded in a value.

    ``"k": "say "hi" now",`` -> ``"k": "say \\"hi\\" now",``
    """

    def _escape(match: re.Match[str]) -> str:
        return (
            f'{match.group("sep")}"{match.group("head")}'
            f'\\"{match.group("middle")}\\"{match.group("tail")}"'
        )

    return _INNER_QUOTES.sub(_escape, text)


def strip_comments(text: str) -> str:
    text = sub_outside_strings(_BLOCK_COMMENT, "", text)
    return sub_outside_strings(_LINE_COMMENT, "", text)


def strip_code_fences(text: str) -> str:
    text = _FENCE_START.sub("", text, count=1)
    return _FENCE_END.sub("", text, count=1)


def quote_bare_keys(text: str) -> str:
    """``{name: 1}`` -> ``{"name": 1}``"""
    return sub_outside_strings(
        _BARE_KEY,
        lambda m: f'{m.group("lead")}"{m.group("key")}"{m.group("gap")}:',
        text,
    )


def quote_bare_words(text: str) -> str:
    """Quote single-word values, leaving ``true``/``false``/``null`` bare.

    ``{"a": ok}`` -> ``{"a": "ok"}``. Existing string values, including
    ``"true"``, are never touched.
    """
    return sub_outside_strings(
        _BARE_WORD, lambda m: f'{m.group("sep")}"{m.group("word")}"', text
    )


def convert_single_quotes(text: str) -> str:
    """``{'a': 'b c'}`` -> ``{"a": "b c"}``"""
    text = sub_outside_strings(
        _SINGLE_QUOTED_KEY, lambda m: f'"{m.group("key")}":', text
    )

    def _value(match: re.Match[str]) -> str:
        value = match.group("value").replace('"', '\\"')
        return f': "{value}"'

    return sub_outside_strings(_SINGLE_QUOTED_VALUE, _value, text)


def quote_bare_values(text: str) -> str:
    """Quote multi-word bare values up to the next ``,``, ``}`` or ``]``.

    ``{"action": create patterns now}`` ->
    ``{"action": "create patterns now"}``. Numbers and JSON literals are left
    alone; embedded double quotes are escaped.
    """

    def _quote(match: re.Match[str]) -> str:
        value = match.group("value").strip()
        if value in _JSON_LITERALS or _NUMBER.fullmatch(value):
            return match.group(0)
        escaped = value.replace('"', '\\"')
        return f'{match.group("sep")}"{escaped}"'

    return sub_outside_strings(_BARE_VALUE, _quote, text)
