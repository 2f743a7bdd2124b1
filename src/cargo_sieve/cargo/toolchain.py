"""Locating the analyzer, rustc and their shared toolchain."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import shutil
import subprocess
import sys
from typing import Callable

from cargo_sieve.exceptions import ConfigurationError, SubprocessFailure, ToolchainMismatchError

ANALYZER_NAME = "sieve"
WRAPPER_NAME = "cargo-sieve"
COMPILER_NAME = "rustc"
COMPILE_CACHE_NAME = "sccache"

RunCommand = Callable[..., subprocess.CompletedProcess[str]]
Which = Callable[[str], str | None]


def self_executable(
    argv0: str | None = None,
    *,
    which_fn: Which = shutil.which,
) -> Path:
    """Path of the running ``cargo-sieve`` script.

    ``sys.executable`` is the interpreter, not the wrapper, so the script
    path comes from ``argv[0]``.
    """
    candidate = argv0 if argv0 is not None else (sys.argv[0] if sys.argv else "")
    if candidate and Path(candidate).name != candidate:
        return Path(candidate).resolve()
    found = which_fn(candidate or WRAPPER_NAME)
    if found:
        return Path(found).resolve()
    raise ConfigurationError("current executable path invalid")


def find_analyzer(wrapper: Path | None = None) -> Path:
    return (wrapper or self_executable()).with_name(ANALYZER_NAME)


def compile_cache(*, which_fn: Which = shutil.which) -> str | None:
    return which_fn(COMPILE_CACHE_NAME)


def _run_text(command: list[str], run_fn: RunCommand) -> subprocess.CompletedProcess[str]:
    try:
        return run_fn(command, capture_output=True, text=True, check=False)
    except OSError as exc:
        raise ToolchainMismatchError(f"Failed to run {command[0]}: {exc}") from exc


def parse_host_triple(version_verbose: str) -> str:
    for line in version_verbose.splitlines():
        key, _, value = line.partition(":")
        if key.strip() == "host" and value.strip():
            return value.strip()
    raise ToolchainMismatchError("failed to determine the host triple from `-vV` output")


@dataclass
class Toolchain:
    analyzer: Path
    run_fn: RunCommand = subprocess.run
    _host: str | None = field(default=None, init=False, repr=False)

    def host_triple(self) -> str:
        if self._host is None:
            proc = _run_text([str(self.analyzer), "-vV"], self.run_fn)
            if proc.returncode != 0:
                raise ToolchainMismatchError(
                    "failed to determine underlying rustc version of sieve\n"
                    f"{(proc.stderr or '').strip()}"
                )
            self._host = parse_host_triple(proc.stdout)
        return self._host

    def sysroot(self, command: str | Path) -> Path:
        proc = _run_text([str(command), "--print", "sysroot"], self.run_fn)
        stdout = (proc.stdout or "").strip()
        if proc.returncode != 0:
            raise ToolchainMismatchError(
                f"Bad status code {proc.returncode} when getting sysroot info.\n"
                f"stdout:\n{stdout}\nstderr:\n{(proc.stderr or '').strip()}\n"
                f"command:\n{command} --print sysroot"
            )
        try:
            return Path(stdout).resolve(strict=True)
        except (OSError, RuntimeError) as exc:
            raise ToolchainMismatchError(f"Failed to canonicalize sysroot: {stdout}") from exc

    def check_sysroot_consistency(self) -> None:
        rustc_sysroot = self.sysroot(COMPILER_NAME)
        analyzer_sysroot = self.sysroot(self.analyzer)
        if rustc_sysroot != analyzer_sysroot:
            raise ToolchainMismatchError(
                "sieve was built for a different sysroot than the rustc in your current toolchain.\n"
                "Make sure you use the same toolchain to run sieve that you used to build it!\n"
                f"rustc sysroot: `{rustc_sysroot}`\n"
                f"sieve sysroot: `{analyzer_sysroot}`"
            )

    def clean_package(self, manifest_path: Path | None = None) -> None:
        command = ["cargo", "clean"]
        if manifest_path is not None:
            command.extend(["--manifest-path", str(manifest_path)])
        command.extend(["--target", self.host_triple()])
        try:
            proc = self.run_fn(command, check=False)
        except OSError as exc:
            raise SubprocessFailure(f"could not run cargo clean: {exc}") from exc
        if proc.returncode != 0:
            raise SubprocessFailure("cargo clean failed", exit_code=proc.returncode)
