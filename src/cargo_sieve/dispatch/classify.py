"""Deciding what a single rustc invocation is for.

Cargo calls the wrapper once per compiled unit. The orchestrator always
passes ``--target`` to cargo, and cargo only forwards it to units built for
the target platform, never to build scripts or proc macros. Cargo also names
local crates by a workspace-relative entry path and registry crates by an
absolute one. Together those two signals pick out the crate under analysis.
Neither is a documented cargo contract, so the check is a replaceable
predicate rather than a fixed rule.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Sequence

from cargo_sieve.cargo.flags import any_flag_value, first_source_file, flag_value
from cargo_sieve.cargo.metadata import TargetKind

DirectTargetPredicate = Callable[[Sequence[str]], bool]


def contains_target_flag(args: Sequence[str]) -> bool:
    return flag_value(args, "--target") is not None


def has_relative_entry_path(args: Sequence[str]) -> bool:
    entry = first_source_file(args)
    if entry is None:
        return False
    return not Path(entry).is_absolute()


def default_direct_target_predicate(args: Sequence[str]) -> bool:
    return contains_target_flag(args) and has_relative_entry_path(args)


def is_crate_type_lib(args: Sequence[str]) -> bool:
    return any_flag_value(args, "--crate-type", TargetKind.is_lib_str)


def is_additional_target(package_name: str | None, also_analyze: Iterable[str]) -> bool:
    if not package_name:
        return False
    wanted = package_name.lower()
    return any(name.lower() == wanted for name in also_analyze)


class DispatchAction(str, Enum):
    RUN_ANALYZER = "run_analyzer"
    RUN_COMPILER = "run_compiler"
    RUN_ANALYZER_THEN_COMPILER = "run_analyzer_then_compiler"


@dataclass(frozen=True)
class Classification:
    is_direct: bool
    is_additional: bool
    is_lib: bool

    @property
    def runs_analyzer(self) -> bool:
        return self.is_direct or self.is_additional

    @property
    def runs_compiler(self) -> bool:
        # The analyzer emits no artifacts, so a direct library still needs
        # rustc for the binaries of the same package that link it.
        return not self.is_direct or self.is_lib

    @property
    def action(self) -> DispatchAction:
        if self.runs_analyzer and self.runs_compiler:
            return DispatchAction.RUN_ANALYZER_THEN_COMPILER
        if self.runs_analyzer:
            return DispatchAction.RUN_ANALYZER
        return DispatchAction.RUN_COMPILER


def classify(
    args: Sequence[str],
    *,
    package_name: str | None,
    also_analyze: Iterable[str] = (),
    is_direct_target: DirectTargetPredicate = default_direct_target_predicate,
) -> Classification:
    return Classification(
        is_direct=is_direct_target(args),
        is_additional=is_additional_target(package_name, also_analyze),
        is_lib=is_crate_type_lib(args),
    )
