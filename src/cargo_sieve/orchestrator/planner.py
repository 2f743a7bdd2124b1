from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Mapping, Sequence

from cargo_sieve import channel
from cargo_sieve.cargo.flags import flag_value, split_at_separator
from cargo_sieve.cargo.metadata import CargoPackage, CargoTarget, TargetKind
from cargo_sieve.config import SieveSettings
from cargo_sieve.exceptions import UnsupportedTargetKind
from cargo_sieve.progress import progress_warn, render_command
from cargo_sieve.runtime.env_policy import (
    ALSO_ANALYZE_ENV,
    ARGS_ENV,
    REPORT_PATH_ENV,
    RUSTC_WRAPPER_ENV,
    VERBOSE_ENV,
    suffixed_report_path,
)

CARGO_DRIVER: tuple[str, ...] = ("cargo", "check")
XARGO_DRIVER: tuple[str, ...] = ("xargo-check",)


@dataclass(frozen=True)
class Invocation:
    """One delegated ``cargo check`` run covering a single target."""

    package: str
    target_name: str
    kind: TargetKind
    argv: tuple[str, ...]
    env: Mapping[str, str] = field(default_factory=dict)

    @property
    def label(self) -> str:
        return f"{self.kind}:{self.target_name}"

    def describe(self) -> str:
        return render_command(self.argv, self.env)


def ordered_targets(package: CargoPackage) -> List[CargoTarget]:
    # sorted() is stable, so same-kind targets keep manifest order.
    return sorted(package.targets, key=lambda target: target.target_kind.rank)


@dataclass(frozen=True)
class InvocationPlanner:
    wrapper: Path
    settings: SieveSettings
    host_triple: Callable[[], str]
    warn: Callable[[str], None] = progress_warn

    def driver(self) -> tuple[str, ...]:
        return XARGO_DRIVER if self.settings.use_xargo else CARGO_DRIVER

    def plan_target(
        self,
        package: CargoPackage,
        target: CargoTarget,
        cargo_args: Sequence[str],
        analyzer_args: Sequence[str],
    ) -> Invocation:
        kind = target.target_kind
        argv: list[str] = [*self.driver(), "-p", package.spec]
        if kind is TargetKind.BINARY:
            argv.extend(["--bin", target.name])
        elif kind is TargetKind.LIBRARY:
            # There can be only one lib in a crate.
            argv.append("--lib")
        else:
            raise UnsupportedTargetKind(target.name, target.kind)
        if not self.settings.verbose:
            argv.append("-q")
        argv.extend(cargo_args)
        # An explicit --target is what lets the wrapper tell host-only
        # crates (build scripts, proc macros) from target crates.
        if flag_value(cargo_args, "--target") is None:
            argv.extend(["--target", self.host_triple()])

        env = {
            ARGS_ENV: channel.encode(analyzer_args),
            RUSTC_WRAPPER_ENV: str(self.wrapper),
        }
        if self.settings.report_path is not None:
            env[REPORT_PATH_ENV] = suffixed_report_path(
                self.settings.report_path, str(kind), target.name
            )
        if self.settings.verbose:
            env[VERBOSE_ENV] = ""
        if self.settings.also_analyze:
            env[ALSO_ANALYZE_ENV] = ",".join(self.settings.also_analyze)
        return Invocation(
            package=package.spec,
            target_name=target.name,
            kind=kind,
            argv=tuple(argv),
            env=env,
        )

    def plan_package(
        self,
        package: CargoPackage,
        cargo_args: Sequence[str],
        analyzer_args: Sequence[str],
    ) -> Iterator[Invocation]:
        for target in ordered_targets(package):
            try:
                yield self.plan_target(package, target, cargo_args, analyzer_args)
            except UnsupportedTargetKind as exc:
                self.warn(str(exc))

    def plan(
        self,
        packages: Iterable[CargoPackage],
        args: Sequence[str],
    ) -> Iterator[Invocation]:
        """Invocations for every package in schedule order.

        ``args`` is everything after the persona argument: cargo flags up to
        ``--``, analyzer arguments after it.
        """
        cargo_args, analyzer_args = split_at_separator(args)
        for package in packages:
            yield from self.plan_package(package, cargo_args, analyzer_args)
