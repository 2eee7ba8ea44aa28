"""In-memory dependency graph of workspace packages."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from .package import DEPENDENCY_COLLECTIONS, PackageNode, ResolvedSpec, classify_spec

RUNTIME_EDGES = "dependencies"
ALL_EDGES = "all"

_EDGE_COLLECTIONS = {
    RUNTIME_EDGES: ("dependencies", "optionalDependencies", "peerDependencies"),
    ALL_EDGES: DEPENDENCY_COLLECTIONS,
}


class PackageGraph:
    """Name → node mapping with local dependency edges resolved once."""

    def __init__(self, packages: Iterable[PackageNode]) -> None:
        self._nodes: Dict[str, PackageNode] = {}
        for node in packages:
            if not node.name:
                raise ValueError(f"Manifest at {node.manifest_location} has no name")
            if node.name in self._nodes:
                raise ValueError(f"Package name {node.name!r} is used more than once")
            self._nodes[node.name] = node
        for node in self._nodes.values():
            node.local_dependencies = {
                dep_name: ResolvedSpec(name=dep_name, spec=spec, kind=classify_spec(spec))
                for dep_name, spec in node.dependency_specs().items()
                if dep_name in self._nodes and dep_name != node.name
            }

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __iter__(self) -> Iterator[PackageNode]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, name: str) -> Optional[PackageNode]:
        return self._nodes.get(name)

    def has(self, name: Optional[str]) -> bool:
        return bool(name) and name in self._nodes

    def dependencies_of(self, node: PackageNode, edge_kind: str = RUNTIME_EDGES) -> List[str]:
        try:
            collections = _EDGE_COLLECTIONS[edge_kind]
        except KeyError as exc:
            raise ValueError(f"Unknown edge kind '{edge_kind}'") from exc
        names: List[str] = []
        for collection in collections:
            for dep_name in node.manifest.get(collection) or {}:
                if dep_name in node.local_dependencies and dep_name not in names:
                    names.append(dep_name)
        return names
