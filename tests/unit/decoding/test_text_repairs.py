import json

import pytest

from research_completion.decoding.repairs import (
    convert_single_quotes,
    escape_inner_quotes,
    normalize_smart_quotes,
    quote_bare_keys,
    quote_bare_values,
    quote_bare_words,
    remove_trailing_commas,
    strip_code_fences,
    strip_comments,
)

pytestmark = pytest.mark.unit


def test_normalize_smart_quotes():
    assert normalize_smart_quotes("\u201cit\u2019s\u201d") == "\"it's\""


def test_remove_trailing_commas():
    assert remove_trailing_commas('{"a": [1, 2,], }') == '{"a": [1, 2] }'
    assert remove_trailing_commas('{"a": "x,}"}') == '{"a": "x,}"}'


def test_escape_inner_quotes():
    repaired = escape_inner_quotes('{"k": "say "hi" now", "n": 1}')
    assert repaired == '{"k": "say \\"hi\\" now", "n": 1}'
    assert json.loads(repaired)["k"] == 'say "hi" now'


def test_escape_inner_quotes_leaves_escaped_quotes_alone():
    text = '{"k": "say \\"hi\\" now"}'
    assert escape_inner_quotes(text) == text


def test_strip_comments():
    assert strip_comments('{"u": "http://a.b"} // trailing') == '{"u": "http://a.b"} '
    assert strip_comments('{"a": /* note */ 1}') == '{"a":  1}'


def test_strip_comments_keeps_bare_urls():
    assert strip_comments("{u: http://a.b}") == "{u: http://a.b}"


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n[1]\n```\n') == "[1]"


def test_quote_bare_keys():
    assert (
        quote_bare_keys('{name: "Ada", age_years: 3}')
        == '{"name": "Ada", "age_years": 3}'
    )


def test_quote_bare_words_keeps_literals():
    assert (
        quote_bare_words('{"status": ok, "flag": true}')
        == '{"status": "ok", "flag": true}'
    )


def test_convert_single_quotes():
    converted = convert_single_quotes("{'a': 'b \"c\" d'}")
    assert json.loads(converted) == {"a": 'b "c" d'}


def test_quote_bare_values():
    assert (
        quote_bare_values('{"a": create patterns now, "n": -1.5e3, "b": null}')
        == '{"a": "create patterns now", "n": -1.5e3, "b": null}'
    )


def test_quote_bare_values_escapes_embedded_quotes():
    assert quote_bare_values('{"a": 5 "inch" screen}') == '{"a": "5 \\"inch\\" screen"}'


def test_quote_bare_words_leaves_quoted_literals_as_strings():
    text = '{"flag": "false", "empty": "null", "word": truest}'
    assert (
        quote_bare_words(text)
        == '{"flag": "false", "empty": "null", "word": "truest"}'
    )
