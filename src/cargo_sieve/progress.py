"""Progress and diagnostic lines on stderr."""

from __future__ import annotations

import shlex
from typing import Mapping, Sequence

import typer


def _emit(label: str, message: str, color: str) -> None:
    typer.secho(f"{label:>12} ", err=True, fg=color, bold=True, nl=False)
    typer.echo(message, err=True)


def progress_info(message: str) -> None:
    _emit("Info", message, typer.colors.GREEN)


def progress_warn(message: str) -> None:
    _emit("Warning", message, typer.colors.YELLOW)


def progress_error(message: str) -> None:
    _emit("Error", message, typer.colors.RED)


def render_command(argv: Sequence[str], env: Mapping[str, str] | None = None) -> str:
    prefix = " ".join(f"{key}={shlex.quote(value)}" for key, value in sorted((env or {}).items()))
    command = shlex.join(list(argv))
    return f"+ {prefix} {command}" if prefix else f"+ {command}"


def echo_command(argv: Sequence[str], env: Mapping[str, str] | None = None) -> None:
    typer.echo(render_command(argv, env), err=True)
