"""Partition packages into dependency-ordered batches."""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Set

from ..errors import CycleError
from .graph import RUNTIME_EDGES, PackageGraph
from .package import PackageNode

logger = logging.getLogger(__name__)


def batch_packages(
    packages: Sequence[PackageNode],
    graph: PackageGraph,
    edge_kind: str = RUNTIME_EDGES,
    *,
    reject_cycles: bool = False,
) -> List[List[PackageNode]]:
    """Group ``packages`` so every local dependency lands in an earlier batch.

    Only edges between members of ``packages`` are considered. Each batch is
    the set of packages whose remaining dependencies were all emitted already,
    kept in input order. On a cycle, ``CycleError`` is raised when
    ``reject_cycles`` is set; otherwise the cycle is logged and broken by
    emitting the cycle members with the fewest unresolved dependencies.
    """

    members = {pkg.name: pkg for pkg in packages}
    pending: Dict[str, Set[str]] = {
        name: {dep for dep in graph.dependencies_of(pkg, edge_kind) if dep in members}
        for name, pkg in members.items()
    }

    cycles = find_cycles(pending)
    if cycles:
        involved = sorted({name for cycle in cycles for name in cycle})
        if reject_cycles:
            raise CycleError(involved, cycles)
        logger.warning(
            "Dependency cycles detected, you should fix these! %s",
            "; ".join(" -> ".join(cycle) for cycle in cycles),
        )

    cyclic = {name for cycle in cycles for name in cycle}
    batches: List[List[PackageNode]] = []
    while pending:
        ready = [name for name in members if name in pending and not pending[name]]
        if not ready:
            stuck = [name for name in members if name in pending and name in cyclic] or [
                name for name in members if name in pending
            ]
            fewest = min(len(pending[name]) for name in stuck)
            ready = [name for name in stuck if len(pending[name]) == fewest]
            logger.debug("breaking cycle by releasing %s", ", ".join(ready))
        for name in ready:
            del pending[name]
        for deps in pending.values():
            deps.difference_update(ready)
        batches.append([members[name] for name in ready])
    return batches


def find_cycles(edges: Dict[str, Set[str]]) -> List[List[str]]:
    """Return each dependency cycle once, as a closed path of package names."""

    cycles: List[List[str]] = []
    seen: Set[frozenset] = set()
    state: Dict[str, int] = {}
    stack: List[str] = []

    def visit(name: str) -> None:
        state[name] = 1
        stack.append(name)
        for dep in sorted(edges.get(name, ())):
            if state.get(dep) == 1:
                cycle = stack[stack.index(dep):] + [dep]
                key = frozenset(cycle)
                if key not in seen:
                    seen.add(key)
                    cycles.append(cycle)
            elif dep not in state:
                visit(dep)
        stack.pop()
        state[name] = 2

    for name in edges:
        if name not in state:
            visit(name)
    return cycles


def flatten_batches(batches: Sequence[Sequence[PackageNode]]) -> List[PackageNode]:
    return [pkg for batch in batches for pkg in batch]


def single_batch(packages: Sequence[PackageNode]) -> List[List[PackageNode]]:
    return [list(packages)] if packages else []
