"""Argument channel between the orchestrator and the compiler wrapper.

``cargo check`` has no way to hand extra arguments to one particular rustc
invocation, so the analyzer arguments captured at planning time ride along
in a single environment variable. The wire format is versioned compact JSON:

    {"args":["--flag","value"],"version":1}

``ensure_ascii`` escaping keeps every control character (NUL included, which
an environment block cannot hold raw) inside printable ASCII.
"""

from __future__ import annotations

import json
import os
from typing import Mapping, Sequence

from cargo_sieve.exceptions import SerializationError
from cargo_sieve.runtime.env_policy import ARGS_ENV

CHANNEL_VERSION = 1


def encode(args: Sequence[str]) -> str:
    items = list(args)
    for index, item in enumerate(items):
        if not isinstance(item, str):
            raise SerializationError(
                f"argument {index} is {type(item).__name__}, expected str"
            )
    return json.dumps(
        {"args": items, "version": CHANNEL_VERSION},
        separators=(",", ":"),
        sort_keys=True,
        ensure_ascii=True,
    )


def decode(text: str) -> list[str]:
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"failed to deserialize {ARGS_ENV}: {exc}") from exc
    if not isinstance(payload, dict):
        raise SerializationError(
            f"failed to deserialize {ARGS_ENV}: expected an object, got {type(payload).__name__}"
        )
    version = payload.get("version")
    if version != CHANNEL_VERSION or isinstance(version, bool):
        raise SerializationError(
            f"unsupported {ARGS_ENV} version {version!r} (expected {CHANNEL_VERSION})"
        )
    args = payload.get("args")
    if not isinstance(args, list):
        raise SerializationError(f"failed to deserialize {ARGS_ENV}: 'args' is not a list")
    if not all(isinstance(item, str) for item in args):
        raise SerializationError(f"failed to deserialize {ARGS_ENV}: non-string argument")
    return list(args)


def decode_from_env(env: Mapping[str, str] | None = None) -> list[str]:
    environ = os.environ if env is None else env
    if ARGS_ENV not in environ:
        raise SerializationError(f"missing {ARGS_ENV}")
    return decode(environ[ARGS_ENV])
