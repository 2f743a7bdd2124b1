from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, Dict, List, Mapping, Set

from cargo_sieve.exceptions import CyclicDependencyError


@dataclass(frozen=True)
class ScheduleResult:
    order: List[str] = field(default_factory=list)
    cycles: List[frozenset[str]] = field(default_factory=list)
    unresolved: Dict[str, frozenset[str]] = field(default_factory=dict)


def topological_schedule(graph: Mapping[str, AbstractSet[str]]) -> ScheduleResult:
    """Kahn's algorithm over a read-only view of ``graph``.

    ``graph`` maps a package to the packages it depends on. Dependencies come
    out before their dependents; ties are broken lexically so equal inputs
    always schedule identically. The caller's mapping is never touched.
    """
    nodes: Set[str] = set(graph.keys())
    for deps in graph.values():
        nodes.update(deps)

    in_degree: Dict[str, int] = {node: 0 for node in nodes}
    dependents: Dict[str, Set[str]] = {node: set() for node in nodes}
    for node, deps in graph.items():
        for dep in set(deps):
            dependents[dep].add(node)
            in_degree[node] += 1

    ready = sorted(node for node, degree in in_degree.items() if degree == 0)
    order: List[str] = []
    while ready:
        node = ready.pop(0)
        order.append(node)
        for follower in sorted(dependents[node]):
            in_degree[follower] -= 1
            if in_degree[follower] == 0:
                ready.append(follower)
        ready.sort()

    remaining = {node for node, degree in in_degree.items() if degree > 0}
    if not remaining:
        return ScheduleResult(order=order)
    unresolved = {
        node: frozenset(dep for dep in graph.get(node, ()) if dep in remaining)
        for node in remaining
    }
    cycles = [
        frozenset(component)
        for component in _strongly_connected_components(unresolved)
        if len(component) > 1 or any(node in unresolved.get(node, ()) for node in component)
    ]
    return ScheduleResult(order=order, cycles=cycles, unresolved=unresolved)


def workspace_order(
    graph: Mapping[str, AbstractSet[str]],
    members: AbstractSet[str],
) -> List[str]:
    """Schedule the whole graph, then keep workspace members only.

    Non-member packages still take part in ordering; they are just never
    dispatched directly.
    """
    result = topological_schedule(graph)
    if result.unresolved:
        raise CyclicDependencyError(result.unresolved, result.cycles)
    return [package_id for package_id in result.order if package_id in members]


def _strongly_connected_components(graph: Mapping[str, AbstractSet[str]]) -> List[Set[str]]:
    index = 0
    indices: Dict[str, int] = {}
    lowlinks: Dict[str, int] = {}
    stack: List[str] = []
    on_stack: Set[str] = set()
    components: List[Set[str]] = []

    def visit(node: str) -> None:
        nonlocal index
        indices[node] = index
        lowlinks[node] = index
        index += 1
        stack.append(node)
        on_stack.add(node)
        for neighbor in sorted(graph.get(node, ())):
            if neighbor not in indices:
                visit(neighbor)
                lowlinks[node] = min(lowlinks[node], lowlinks[neighbor])
            elif neighbor in on_stack:
                lowlinks[node] = min(lowlinks[node], indices[neighbor])
        if lowlinks[node] == indices[node]:
            component: Set[str] = set()
            while True:
                popped = stack.pop()
                on_stack.discard(popped)
                component.add(popped)
                if popped == node:
                    break
            components.append(component)

    for node in sorted(graph):
        if node not in indices:
            visit(node)

    return components
