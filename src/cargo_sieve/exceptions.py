"""Error taxonomy for cargo-sieve runs."""

from __future__ import annotations

from typing import Mapping


class SieveError(RuntimeError):
    """Base class for every condition that ends a cargo-sieve run."""


class ConfigurationError(SieveError):
    """Unreadable manifest, bad metadata or an invalid setting."""


class CyclicDependencyError(ConfigurationError):
    """The dependency graph could not be ordered.

    ``unresolved`` is the subgraph left once every orderable package was
    removed; ``cycles`` lists its strongly connected components so the
    offending loop can be read off directly.
    """

    def __init__(
        self,
        unresolved: Mapping[str, frozenset[str]],
        cycles: list[frozenset[str]],
    ) -> None:
        self.unresolved = dict(unresolved)
        self.cycles = list(cycles)
        lines = [f"Cyclic dependencies in workspace ({len(self.unresolved)} unresolved)."]
        for package_id in sorted(self.unresolved):
            deps = ", ".join(sorted(self.unresolved[package_id])) or "-"
            lines.append(f"  {package_id} -> {deps}")
        super().__init__("\n".join(lines))


class ToolchainMismatchError(SieveError):
    """The analyzer and rustc do not share a sysroot."""


class SubprocessFailure(SieveError):
    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class TimeoutExceeded(SieveError):
    def __init__(self, message: str, *, timeout_seconds: float) -> None:
        super().__init__(message)
        self.timeout_seconds = timeout_seconds


class SerializationError(SieveError):
    """The argument payload could not be encoded or decoded."""


class UnsupportedTargetKind(SieveError):
    """A target kind the planner cannot route.

    This is the one recoverable error: the planner warns and moves on to the
    next target.
    """

    def __init__(self, target_name: str, kinds: list[str]) -> None:
        super().__init__(f"Target {'/'.join(kinds)}:{target_name} is not supported")
        self.target_name = target_name
        self.kinds = list(kinds)


class ReportSinkError(SieveError):
    """The report sink was installed twice or used before installation."""
