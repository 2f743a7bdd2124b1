from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Callable, List, Mapping, Sequence
import os

from cargo_sieve.cargo import metadata as cargo_metadata
from cargo_sieve.cargo.flags import flag_value, has_flag, split_at_separator
from cargo_sieve.cargo.toolchain import Toolchain
from cargo_sieve.config import SieveSettings
from cargo_sieve.exceptions import TimeoutExceeded
from cargo_sieve.orchestrator.planner import Invocation, InvocationPlanner
from cargo_sieve.orchestrator.schedule import workspace_order
from cargo_sieve.orchestrator.supervisor import ProcessSupervisor
from cargo_sieve.progress import echo_command, progress_info, progress_warn
from cargo_sieve.runtime.env_policy import RUSTC_WRAPPER_ENV


def scheduled_packages(
    metadata: cargo_metadata.CargoMetadata,
) -> List[cargo_metadata.CargoPackage]:
    """Workspace members, dependencies first."""
    graph = cargo_metadata.dependency_graph(metadata)
    order = workspace_order(graph, set(metadata.workspace_members))
    return [metadata.package(package_id) for package_id in order]


class RunState(str, Enum):
    IDLE = "idle"
    SCHEDULING = "scheduling"
    DISPATCHING = "dispatching"
    DONE = "done"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class OrchestratorRun:
    """One ``cargo sieve`` run: schedule the workspace, then drive one
    delegated build per target, strictly one at a time.

    Any fatal error leaves the run in ``FAILED`` or ``TIMED_OUT`` and
    propagates; no further targets are attempted.
    """

    settings: SieveSettings
    wrapper: Path
    toolchain: Toolchain
    supervisor: ProcessSupervisor
    load_metadata: Callable[..., cargo_metadata.CargoMetadata] = cargo_metadata.load_metadata
    env: Mapping[str, str] = field(default_factory=lambda: os.environ)
    state: RunState = RunState.IDLE
    completed: List[Invocation] = field(default_factory=list)

    def schedule(self, manifest_path: str | None) -> List[cargo_metadata.CargoPackage]:
        return scheduled_packages(self.load_metadata(manifest_path))

    def execute(self, args: Sequence[str]) -> None:
        """``args`` is everything after the persona argument."""
        cargo_args, _ = split_at_separator(args)
        settings = self.settings
        if has_flag(cargo_args, "-v") and not settings.verbose:
            settings = replace(settings, verbose=True)
        manifest_path = flag_value(cargo_args, "--manifest-path")
        try:
            self.state = RunState.SCHEDULING
            self.toolchain.check_sysroot_consistency()
            if settings.clean:
                self.toolchain.clean_package(
                    cargo_metadata.canonical_manifest_path(manifest_path)
                    if manifest_path is not None
                    else None
                )
            packages = self.schedule(manifest_path)

            if RUSTC_WRAPPER_ENV in self.env:
                progress_warn(
                    f"Ignoring existing `{RUSTC_WRAPPER_ENV}` environment variable, "
                    "sieve does not support wrapping."
                )
            planner = InvocationPlanner(
                wrapper=self.wrapper,
                settings=settings,
                host_triple=self.toolchain.host_triple,
            )
            self.state = RunState.DISPATCHING
            for invocation in planner.plan(packages, args):
                if settings.verbose:
                    echo_command(invocation.argv, invocation.env)
                progress_info(f"Running sieve for target {invocation.label}")
                self.supervisor.run_checked(invocation.argv, invocation.env, base_env=self.env)
                self.completed.append(invocation)
        except TimeoutExceeded:
            self.state = RunState.TIMED_OUT
            raise
        except Exception:
            self.state = RunState.FAILED
            raise
        self.state = RunState.DONE
