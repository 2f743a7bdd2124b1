from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence
import os
import subprocess
import sys

import typer

from cargo_sieve import channel
from cargo_sieve.cargo import metadata as cargo_metadata
from cargo_sieve.cargo.toolchain import (
    ANALYZER_NAME,
    COMPILER_NAME,
    Toolchain,
    compile_cache,
    find_analyzer,
    self_executable,
)
from cargo_sieve.config import SieveSettings, load_settings
from cargo_sieve.dispatch.gate import CompilerDispatchGate, RunCommand
from cargo_sieve.exceptions import SerializationError, SieveError
from cargo_sieve.orchestrator.planner import InvocationPlanner
from cargo_sieve.orchestrator.run import OrchestratorRun, scheduled_packages
from cargo_sieve.orchestrator.supervisor import ProcessSupervisor
from cargo_sieve.progress import progress_error, progress_info

HELP_TEXT = """Tests crates with sieve
Usage:
    cargo sieve [<cargo options>] [--] [<rustc/sieve options>...]

Common options:
    -h, --help               Print this message

Other [options] are the same as `cargo check`. Everything after the first "--" is
passed verbatim to sieve.
"""

app = typer.Typer(add_completion=False, help="Inspect what `cargo sieve` would run.")


def show_help() -> None:
    typer.echo(HELP_TEXT)


def run_orchestrator(
    args: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    settings: SieveSettings | None = None,
    wrapper: Path | None = None,
    toolchain: Toolchain | None = None,
    supervisor: ProcessSupervisor | None = None,
    load_metadata: Callable[..., cargo_metadata.CargoMetadata] = cargo_metadata.load_metadata,
) -> int:
    environ = os.environ if env is None else env
    progress_info("Running cargo sieve")
    try:
        resolved_settings = settings or load_settings(environ)
        resolved_wrapper = wrapper or self_executable()
        run = OrchestratorRun(
            settings=resolved_settings,
            wrapper=resolved_wrapper,
            toolchain=toolchain or Toolchain(analyzer=find_analyzer(resolved_wrapper)),
            supervisor=supervisor
            or ProcessSupervisor(timeout_seconds=resolved_settings.timeout_seconds),
            load_metadata=load_metadata,
            env=environ,
        )
        run.execute(args)
    except SieveError as exc:
        progress_error(str(exc))
        return 1
    progress_info("cargo sieve finished")
    return 0


def run_compiler_dispatch(
    args: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    wrapper: Path | None = None,
    compile_cache_path: str | None = None,
    run_fn: RunCommand = subprocess.run,
) -> int:
    """``args`` is ``[<rustc path>, *rustc_args]`` as cargo passed them."""
    environ = os.environ if env is None else env
    try:
        gate = CompilerDispatchGate(
            analyzer=find_analyzer(wrapper or self_executable()),
            env=environ,
            compile_cache=compile_cache_path or compile_cache(),
            run_fn=run_fn,
        )
        return gate.dispatch(args)
    except SieveError as exc:
        progress_error(str(exc))
        return 1


def main(
    argv: Sequence[str] | None = None,
    *,
    orchestrate_fn: Callable[[Sequence[str]], int] = run_orchestrator,
    dispatch_fn: Callable[[Sequence[str]], int] = run_compiler_dispatch,
) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    # Honoured even in the rustc persona, before anything is spawned.
    if any(arg in ("--help", "-h") for arg in args):
        show_help()
        return 0
    persona = args[0] if args else ""
    if persona.endswith(ANALYZER_NAME):
        # `cargo sieve ...` arrives as `cargo-sieve sieve ...`.
        return orchestrate_fn(args[1:])
    if persona.endswith(COMPILER_NAME):
        # As RUSTC_WRAPPER: `cargo-sieve /path/to/rustc <rustc args>`.
        return dispatch_fn(args)
    progress_error(
        f"`cargo-sieve` must be called with either `{ANALYZER_NAME}` or "
        f"`{COMPILER_NAME}` as first argument."
    )
    return 1


def entrypoint() -> None:
    raise SystemExit(main())


def _context_load_metadata(ctx: typer.Context) -> Callable[..., cargo_metadata.CargoMetadata]:
    obj = ctx.obj
    if isinstance(obj, Mapping):
        candidate = obj.get("load_metadata")
        if callable(candidate):
            return candidate
    return cargo_metadata.load_metadata


def _context_host_triple(ctx: typer.Context) -> Callable[[], str]:
    obj = ctx.obj
    if isinstance(obj, Mapping):
        candidate = obj.get("host_triple")
        if callable(candidate):
            return candidate
    return Toolchain(analyzer=find_analyzer()).host_triple


def _context_wrapper(ctx: typer.Context) -> Path:
    obj = ctx.obj
    if isinstance(obj, Mapping):
        candidate = obj.get("wrapper")
        if isinstance(candidate, Path):
            return candidate
    return self_executable()


def _scheduled_packages(
    ctx: typer.Context,
    manifest_path: Optional[Path],
) -> List[cargo_metadata.CargoPackage]:
    load_metadata = _context_load_metadata(ctx)
    return scheduled_packages(
        load_metadata(str(manifest_path) if manifest_path is not None else None)
    )


@app.command("schedule")
def schedule(
    ctx: typer.Context,
    manifest_path: Optional[Path] = typer.Option(
        None,
        "--manifest-path",
        help="Path to Cargo.toml (default: cargo's own lookup).",
    ),
) -> None:
    """Print workspace packages in the order cargo sieve visits them."""
    try:
        packages = _scheduled_packages(ctx, manifest_path)
    except SieveError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc
    for package in packages:
        typer.echo(package.spec)


@app.command("plan")
def plan(
    ctx: typer.Context,
    analyzer_args: Optional[List[str]] = typer.Argument(
        None,
        help="Arguments that would be handed to sieve.",
    ),
    manifest_path: Optional[Path] = typer.Option(
        None,
        "--manifest-path",
        help="Path to Cargo.toml (default: cargo's own lookup).",
    ),
) -> None:
    """Print every delegated build cargo sieve would spawn, without running it."""
    try:
        settings = load_settings()
        packages = _scheduled_packages(ctx, manifest_path)
        planner = InvocationPlanner(
            wrapper=_context_wrapper(ctx),
            settings=settings,
            host_triple=_context_host_triple(ctx),
            warn=lambda message: typer.secho(message, err=True, fg=typer.colors.YELLOW),
        )
        cargo_args = ["--manifest-path", str(manifest_path)] if manifest_path is not None else []
        invocations = list(planner.plan(packages, [*cargo_args, "--", *(analyzer_args or [])]))
    except SieveError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc
    for invocation in invocations:
        typer.echo(invocation.describe())


@app.command("decode-args")
def decode_args(
    text: str = typer.Argument(..., help="Value of SIEVE_ARGS."),
) -> None:
    """Print the analyzer arguments carried by a SIEVE_ARGS value, one per line."""
    try:
        items = channel.decode(text)
    except SerializationError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=2) from exc
    for item in items:
        typer.echo(repr(item))
