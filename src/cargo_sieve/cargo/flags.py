"""Helpers for reading cargo/rustc style flags out of an argv list.

Every lookup stops at the first ``--`` unless told otherwise: anything past
the separator belongs to the analyzer, not to cargo.
"""

from __future__ import annotations

from typing import Callable, Iterator, Sequence

SEPARATOR = "--"


def _until_separator(args: Sequence[str], stop: bool = True) -> Iterator[str]:
    for arg in args:
        if stop and arg == SEPARATOR:
            return
        yield arg


def split_at_separator(args: Sequence[str]) -> tuple[list[str], list[str]]:
    items = list(args)
    if SEPARATOR not in items:
        return items, []
    index = items.index(SEPARATOR)
    return items[:index], items[index + 1 :]


def has_flag(args: Sequence[str], name: str) -> bool:
    return any(arg == name for arg in _until_separator(args))


def _flag_values(args: Sequence[str], name: str, stop: bool) -> Iterator[str]:
    remaining = _until_separator(args, stop)
    for arg in remaining:
        if not arg.startswith(name):
            continue
        suffix = arg[len(name) :]
        if not suffix:
            value = next(remaining, None)
            if value is None:
                return
            yield value
        elif suffix.startswith("="):
            yield suffix[1:]


def flag_value(
    args: Sequence[str],
    name: str,
    *,
    stop_at_separator: bool = True,
) -> str | None:
    """Value of ``--name value`` or ``--name=value``, first match wins."""
    return next(_flag_values(args, name, stop_at_separator), None)


def any_flag_value(
    args: Sequence[str],
    name: str,
    predicate: Callable[[str], bool],
) -> bool:
    return any(predicate(value) for value in _flag_values(args, name, True))


def first_source_file(args: Sequence[str]) -> str | None:
    return next((arg for arg in _until_separator(args) if arg.endswith(".rs")), None)
