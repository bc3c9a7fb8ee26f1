from __future__ import annotations

import pytest

from src.utils.errors import ResponseParseError
from src.utils.json_response import clamp, is_number, parse_json_response


def test_plain_json() -> None:
    assert parse_json_response('{"claims": []}') == {"claims": []}


def test_fenced_json_block() -> None:
    reply = 'Here you go:\n```json\n{"gaps": [{"description": "x"}]}\n```\nThanks.'

    assert parse_json_response(reply) == {"gaps": [{"description": "x"}]}


def test_fenced_block_without_language() -> None:
    assert parse_json_response("```\n[1, 2, 3]\n```") == [1, 2, 3]


def test_first_fenced_block_wins() -> None:
    reply = '```json\n{"a": 1}\n```\n```json\n{"b": 2}\n```'

    assert parse_json_response(reply) == {"a": 1}


def test_unparseable_reply_raises_with_snippet() -> None:
    reply = "I cannot help with that. " * 20

    with pytest.raises(ResponseParseError) as excinfo:
        parse_json_response(reply)

    assert excinfo.value.snippet == reply[:200]
    assert str(excinfo.value).startswith("Failed to parse JSON response: ")


def test_broken_fenced_block_raises() -> None:
    with pytest.raises(ResponseParseError):
        parse_json_response("```json\n{not json}\n```")


def test_clamp_and_is_number() -> None:
    assert clamp(1.7, 0.0, 1.0) == 1.0
    assert clamp(-3, 1, 10) == 1
    assert clamp(0.4, 0.0, 1.0) == pytest.approx(0.4)
    assert is_number(3)
    assert is_number(0.5)
    assert not is_number(True)
    assert not is_number("0.5")
    assert not is_number(None)
