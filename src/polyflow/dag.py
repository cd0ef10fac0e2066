# dag.py
from __future__ import annotations

from typing import Dict, List, Set, Tuple

from .errors import CycleDetected, EmptyWorkflow, UnknownDependency
from .model import WorkflowDefinition


def build_dag(workflow: WorkflowDefinition) -> Tuple[Dict[str, Set[str]], Dict[str, int]]:
    """
    Build a DAG from a workflow definition.

    Returns:
      adj:   dependency -> set of steps that depend on it
      indeg: step -> number of unresolved dependencies

    Raises EmptyWorkflow, UnknownDependency or CycleDetected (self-dependency)
    before any adjacency is returned.
    """
    if len(workflow) == 0:
        raise EmptyWorkflow(workflow.name)

    names = workflow.step_names()
    name_set = set(names)

    for name in names:
        for dep in workflow.get(name).depends_on:
            if dep not in name_set:
                raise UnknownDependency(name, dep, known=names)

    for name in names:
        if name in workflow.get(name).depends_on:
            raise CycleDetected([name])

    adj: Dict[str, Set[str]] = {n: set() for n in names}
    indeg: Dict[str, int] = {n: 0 for n in names}

    for name in names:
        for dep in workflow.get(name).depends_on:
            # Edge dep -> name (dep must run before name)
            adj[dep].add(name)
            indeg[name] += 1

    return adj, indeg


def topo_levels(adj: Dict[str, Set[str]], indeg: Dict[str, int]) -> List[List[str]]:
    """
    Convert the DAG into topological levels.

    Each level is every not-yet-leveled step whose dependencies all sit in
    earlier levels, so the steps of one level can run in parallel.
    Within a level, names are sorted.
    """
    indeg = dict(indeg)  # copy (we mutate it)
    remaining: Set[str] = set(indeg)
    levels: List[List[str]] = []

    while remaining:
        level = sorted(n for n in remaining if indeg[n] == 0)
        if not level:
            raise CycleDetected(_find_cycle(adj, remaining), stuck=sorted(remaining))

        for node in level:
            remaining.discard(node)
            for child in adj.get(node, set()):
                indeg[child] -= 1

        levels.append(level)

    return levels


def _find_cycle(adj: Dict[str, Set[str]], stuck: Set[str]) -> List[str]:
    # Every stuck step has a stuck dependency, so walking dependencies
    # backwards from any of them must revisit a step.
    parents: Dict[str, List[str]] = {n: [] for n in stuck}
    for node, children in adj.items():
        if node not in stuck:
            continue
        for child in children:
            if child in stuck:
                parents[child].append(node)

    path: List[str] = []
    seen: Dict[str, int] = {}
    node = min(stuck)
    while node not in seen:
        seen[node] = len(path)
        path.append(node)
        node = min(parents[node])
    return path[seen[node]:]


def compute_levels(workflow: WorkflowDefinition) -> List[List[str]]:
    """Validate the workflow and partition its steps into execution levels."""
    adj, indeg = build_dag(workflow)
    return topo_levels(adj, indeg)


def validate_workflow(workflow: WorkflowDefinition) -> None:
    compute_levels(workflow)


def level_of(levels: List[List[str]]) -> Dict[str, int]:
    return {name: idx for idx, level in enumerate(levels) for name in level}
