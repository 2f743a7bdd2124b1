from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import subprocess
from typing import Any, Callable, List, Mapping, Sequence

from cargo_sieve import channel
from cargo_sieve.dispatch.classify import (
    Classification,
    DirectTargetPredicate,
    classify,
    default_direct_target_predicate,
)
from cargo_sieve.exceptions import SubprocessFailure
from cargo_sieve.progress import echo_command
from cargo_sieve.runtime.env_policy import (
    ALSO_ANALYZE_ENV,
    CARGO_PKG_NAME_ENV,
    REPORT_PATH_ENV,
    VERBOSE_ENV,
    env_present,
    split_name_list,
    suffixed_report_path,
)

# Exit status when a child dies without one (killed by a signal).
ABNORMAL_EXIT_CODE = 42

RunCommand = Callable[..., subprocess.CompletedProcess[Any]]


@dataclass(frozen=True)
class UnitCommand:
    argv: tuple[str, ...]
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CompilerDispatchGate:
    """The ``RUSTC_WRAPPER`` side of cargo-sieve.

    Given ``[<rustc>, *rustc_args]`` as cargo passed them, run the analyzer,
    the real compiler, or the analyzer followed by the compiler.
    """

    analyzer: Path
    env: Mapping[str, str] = field(default_factory=lambda: os.environ)
    compile_cache: str | None = None
    is_direct_target: DirectTargetPredicate = default_direct_target_predicate
    run_fn: RunCommand = subprocess.run

    @property
    def verbose(self) -> bool:
        return env_present(VERBOSE_ENV, env=self.env)

    @property
    def package_name(self) -> str | None:
        return self.env.get(CARGO_PKG_NAME_ENV)

    def classify(self, compiler_args: Sequence[str]) -> Classification:
        return classify(
            compiler_args,
            package_name=self.package_name,
            also_analyze=split_name_list(self.env.get(ALSO_ANALYZE_ENV, "")),
            is_direct_target=self.is_direct_target,
        )

    def analyzer_command(self, compiler_args: Sequence[str]) -> UnitCommand:
        payload = channel.decode_from_env(self.env)
        env: dict[str, str] = {}
        if REPORT_PATH_ENV in self.env:
            env[REPORT_PATH_ENV] = suffixed_report_path(
                self.env[REPORT_PATH_ENV], self.package_name or "unknown"
            )
        return UnitCommand(argv=(str(self.analyzer), *compiler_args, *payload), env=env)

    def compiler_command(self, compiler: str, compiler_args: Sequence[str]) -> UnitCommand:
        if self.compile_cache is not None:
            return UnitCommand(argv=(self.compile_cache, compiler, *compiler_args))
        return UnitCommand(argv=(compiler, *compiler_args))

    def plan(self, args: Sequence[str]) -> List[UnitCommand]:
        compiler, *compiler_args = args
        classification = self.classify(compiler_args)
        commands: List[UnitCommand] = []
        if classification.runs_analyzer:
            commands.append(self.analyzer_command(compiler_args))
        if classification.runs_compiler:
            commands.append(self.compiler_command(compiler, compiler_args))
        return commands

    def _run(self, command: UnitCommand) -> int:
        if self.verbose:
            echo_command(command.argv, command.env)
        child_env = dict(self.env)
        child_env.update(command.env)
        try:
            proc = self.run_fn(list(command.argv), env=child_env, check=False)
        except OSError as exc:
            raise SubprocessFailure(f"error running {command.argv[0]}: {exc}") from exc
        code = int(proc.returncode)
        return code if code >= 0 else ABNORMAL_EXIT_CODE

    def dispatch(self, args: Sequence[str]) -> int:
        """Run the planned commands in order, stopping at the first failure."""
        if not args:
            raise SubprocessFailure("missing compiler path in wrapper invocation")
        for command in self.plan(args):
            code = self._run(command)
            if code != 0:
                return code
        return 0
