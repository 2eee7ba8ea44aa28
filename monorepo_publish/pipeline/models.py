from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..graph.graph import PackageGraph
from ..graph.package import PackageNode
from ..graph.workspace import Project
from ..schemas.options import PublishOptions


@dataclass(slots=True)
class PackageResult:
    name: str
    version: str
    status: str
    tag: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "name": self.name,
            "version": self.version,
            "status": self.status,
            "tag": self.tag,
        }
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass(slots=True)
class PublishReport:
    packages: List[PackageResult]
    stages: List[str] = field(default_factory=list)
    git_head: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.packages)

    def summary_lines(self) -> List[str]:
        return [f" - {result.name}@{result.version}" for result in self.packages]

    def to_dict(self) -> Dict[str, object]:
        return {
            "count": self.count,
            "packages": [result.to_dict() for result in self.packages],
            "stages": self.stages,
            "git_head": self.git_head,
        }


@dataclass
class RunState:
    """Transient state for one publish invocation."""

    options: PublishOptions
    project: Project
    graph: PackageGraph
    packages: List[PackageNode]
    batches: List[List[PackageNode]]
    has_rooted_leaf: bool = False
    packages_to_license: List[PackageNode] = field(default_factory=list)
    temp_licenses: List[Path] = field(default_factory=list)
    pack_destination: Optional[Path] = None
    manifests_written: bool = False
    git_head: Optional[str] = None
    username: Optional[str] = None
    results: Dict[str, PackageResult] = field(default_factory=dict)

    def record(self, pkg: PackageNode, status: str, tag: Optional[str] = None, error: Optional[str] = None) -> PackageResult:
        previous = self.results.get(pkg.name)
        result = PackageResult(
            name=pkg.name,
            version=pkg.version,
            status=status,
            tag=tag if tag is not None else (previous.tag if previous else None),
            error=error,
        )
        self.results[pkg.name] = result
        return result

    def ordered_results(self) -> List[PackageResult]:
        return [self.results[pkg.name] for pkg in self.packages if pkg.name in self.results]
