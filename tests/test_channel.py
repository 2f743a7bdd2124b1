from __future__ import annotations

import json

import pytest

from cargo_sieve import channel
from cargo_sieve.exceptions import SerializationError


@pytest.mark.parametrize(
    "args",
    [
        [],
        ["-Zsieve-unsafe-destructor"],
        ["--crate-name", "foo bar", ""],
        ["tab\tnewline\nnul\x00escape\x1b[0m", "bell\x07"],
        ["unicode é中", "quote\"back\\slash"],
    ],
)
def test_decode_inverts_encode(args: list[str]) -> None:
    assert channel.decode(channel.encode(args)) == args


def test_encode_is_deterministic_ascii_json() -> None:
    encoded = channel.encode(["a", "\x00"])
    assert encoded == channel.encode(["a", "\x00"])
    assert encoded.isascii()
    assert "\x00" not in encoded
    assert json.loads(encoded) == {"args": ["a", "\x00"], "version": 1}


def test_encode_rejects_non_string_items() -> None:
    with pytest.raises(SerializationError):
        channel.encode(["ok", 3])  # type: ignore[list-item]


@pytest.mark.parametrize(
    "text",
    [
        "",
        "not json",
        '["legacy", "list"]',
        '{"args": ["a"]}',
        '{"args": ["a"], "version": 2}',
        '{"args": ["a"], "version": true}',
        '{"args": "a", "version": 1}',
        '{"args": ["a", 1], "version": 1}',
        '{"args": ["a"], "version": 1',
    ],
)
def test_decode_rejects_malformed_payloads(text: str) -> None:
    with pytest.raises(SerializationError):
        channel.decode(text)


def test_decode_from_env_requires_the_variable() -> None:
    with pytest.raises(SerializationError, match="missing SIEVE_ARGS"):
        channel.decode_from_env({})
    assert channel.decode_from_env({"SIEVE_ARGS": channel.encode(["x"])}) == ["x"]
