from __future__ import annotations

import pytest

from cargo_sieve.exceptions import CyclicDependencyError
from cargo_sieve.orchestrator.schedule import (
    _strongly_connected_components,
    topological_schedule,
    workspace_order,
)


def _assert_topological(order: list[str], graph: dict[str, set[str]]) -> None:
    position = {node: index for index, node in enumerate(order)}
    for node, deps in graph.items():
        for dep in deps:
            assert position[dep] < position[node]


def test_topological_schedule_orders_dependencies() -> None:
    graph = {"a": {"b"}, "b": set()}
    result = topological_schedule(graph)
    assert result.order == ["b", "a"]
    assert result.cycles == []
    assert result.unresolved == {}


def test_topological_schedule_handles_diamonds() -> None:
    graph = {
        "a": {"root"},
        "b": {"root"},
        "c": {"a", "b"},
        "root": set(),
    }
    result = topological_schedule(graph)
    assert result.order == ["root", "a", "b", "c"]
    _assert_topological(result.order, graph)


def test_topological_schedule_includes_dependency_only_nodes() -> None:
    result = topological_schedule({"app": {"registry-crate"}})
    assert result.order == ["registry-crate", "app"]


def test_topological_schedule_leaves_caller_graph_untouched() -> None:
    graph = {"a": {"b"}, "b": {"c"}, "c": set()}
    snapshot = {key: set(value) for key, value in graph.items()}
    topological_schedule(graph)
    assert graph == snapshot


def test_topological_schedule_reports_cycles_and_downstream() -> None:
    graph = {"a": {"b"}, "b": {"a"}, "c": {"a"}, "d": set()}
    result = topological_schedule(graph)
    assert result.order == ["d"]
    assert result.cycles == [frozenset({"a", "b"})]
    assert set(result.unresolved) == {"a", "b", "c"}
    assert result.unresolved["c"] == frozenset({"a"})


def test_topological_schedule_reports_self_cycle() -> None:
    result = topological_schedule({"a": {"a"}})
    assert result.order == []
    assert result.cycles == [frozenset({"a"})]


def test_workspace_order_filters_to_members_after_ordering() -> None:
    graph = {
        "A": set(),
        "B": {"A", "serde"},
        "C": {"B"},
        "serde": set(),
    }
    order = workspace_order(graph, {"A", "B", "C"})
    assert order == ["A", "B", "C"]


def test_workspace_order_raises_on_cycle_with_subgraph() -> None:
    with pytest.raises(CyclicDependencyError) as excinfo:
        workspace_order({"x": {"y"}, "y": {"x"}}, {"x", "y"})
    error = excinfo.value
    assert error.unresolved == {"x": frozenset({"y"}), "y": frozenset({"x"})}
    assert error.cycles == [frozenset({"x", "y"})]
    assert "x -> y" in str(error)
    assert "y -> x" in str(error)


def test_strongly_connected_components_handles_back_edges() -> None:
    components = _strongly_connected_components({"a": {"b"}, "b": {"a"}})
    assert {"a", "b"} in components
