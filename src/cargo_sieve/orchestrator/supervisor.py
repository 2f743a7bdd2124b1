from __future__ import annotations

from dataclasses import dataclass
import os
import signal
import subprocess
from typing import Any, Callable, Mapping, Sequence, Union

from cargo_sieve.exceptions import SubprocessFailure, TimeoutExceeded

PopenFactory = Callable[..., subprocess.Popen[Any]]
KillGroup = Callable[[int, int], None]


@dataclass(frozen=True)
class Completed:
    exit_code: int

    @property
    def success(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class Killed:
    timeout_seconds: float


SupervisedResult = Union[Completed, Killed]


@dataclass(frozen=True)
class ProcessSupervisor:
    """Spawn one child, wait a bounded time, kill and reap on expiry.

    The child leads its own session, so on expiry the whole process group
    goes down with it: cargo, and every rustc or analyzer it started.
    """

    timeout_seconds: float
    popen_fn: PopenFactory = subprocess.Popen
    killpg_fn: KillGroup = os.killpg

    def run(
        self,
        argv: Sequence[str],
        env: Mapping[str, str] | None = None,
        *,
        base_env: Mapping[str, str] | None = None,
    ) -> SupervisedResult:
        child_env = dict(os.environ if base_env is None else base_env)
        child_env.update(env or {})
        try:
            process = self.popen_fn(list(argv), env=child_env, start_new_session=True)
        except OSError as exc:
            raise SubprocessFailure(f"could not run {argv[0]}: {exc}") from exc
        try:
            return Completed(exit_code=int(process.wait(timeout=self.timeout_seconds)))
        except subprocess.TimeoutExpired:
            self._kill_group(process)
            process.wait()
            return Killed(timeout_seconds=self.timeout_seconds)

    def _kill_group(self, process: subprocess.Popen[Any]) -> None:
        try:
            self.killpg_fn(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        # The leader may still be unreaped; kill it directly as well.
        process.kill()

    def run_checked(
        self,
        argv: Sequence[str],
        env: Mapping[str, str] | None = None,
        *,
        base_env: Mapping[str, str] | None = None,
    ) -> Completed:
        result = self.run(argv, env, base_env=base_env)
        if isinstance(result, Killed):
            raise TimeoutExceeded(
                f"Killed due to timeout after {result.timeout_seconds:g}s",
                timeout_seconds=result.timeout_seconds,
            )
        if not result.success:
            raise SubprocessFailure(
                f"Finished with non-zero exit code {result.exit_code}",
                exit_code=result.exit_code,
            )
        return result
