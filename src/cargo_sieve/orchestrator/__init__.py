"""First generation: schedule the workspace and drive one build per target."""

from cargo_sieve.orchestrator.planner import Invocation, InvocationPlanner
from cargo_sieve.orchestrator.run import OrchestratorRun, RunState, scheduled_packages
from cargo_sieve.orchestrator.schedule import ScheduleResult, topological_schedule, workspace_order
from cargo_sieve.orchestrator.supervisor import Completed, Killed, ProcessSupervisor

__all__ = [
    "Completed",
    "Invocation",
    "InvocationPlanner",
    "Killed",
    "OrchestratorRun",
    "ProcessSupervisor",
    "RunState",
    "ScheduleResult",
    "scheduled_packages",
    "topological_schedule",
    "workspace_order",
]
