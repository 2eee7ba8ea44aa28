"""Discover workspace packages from ``lerna.json`` / ``package.json``."""

from __future__ import annotations

import fnmatch
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .graph import PackageGraph
from .package import PackageNode

DEFAULT_PACKAGE_GLOBS = ["packages/*"]


def find_license(directory: Path) -> Optional[Path]:
    """Return the first ``LICENSE`` or ``LICENSE.*`` file (any case) in ``directory``."""

    if not directory.is_dir():
        return None
    for candidate in sorted(directory.iterdir()):
        if not candidate.is_file():
            continue
        lowered = candidate.name.lower()
        if lowered == "license" or lowered.startswith("license."):
            return candidate
    return None


@dataclass
class Project:
    root_path: Path
    manifest: PackageNode
    package_globs: List[str] = field(default_factory=lambda: list(DEFAULT_PACKAGE_GLOBS))

    @property
    def license_path(self) -> Optional[Path]:
        return find_license(self.root_path)

    @classmethod
    def load(cls, root: Path) -> "Project":
        root = Path(root).resolve()
        manifest_path = root / "package.json"
        if not manifest_path.exists():
            raise FileNotFoundError(f"Root package.json not found: {manifest_path}")
        manifest = PackageNode.load(root)
        return cls(root_path=root, manifest=manifest, package_globs=_read_package_globs(root, manifest))


def _read_package_globs(root: Path, manifest: PackageNode) -> List[str]:
    lerna_path = root / "lerna.json"
    if lerna_path.exists():
        lerna = json.loads(lerna_path.read_text(encoding="utf-8"))
        if lerna.get("packages"):
            return [str(entry) for entry in lerna["packages"]]
    workspaces = manifest.get("workspaces")
    if isinstance(workspaces, dict):
        workspaces = workspaces.get("packages")
    if workspaces:
        return [str(entry) for entry in workspaces]
    return list(DEFAULT_PACKAGE_GLOBS)


def discover_packages(project: Project) -> List[PackageNode]:
    locations: List[Path] = []
    for pattern in project.package_globs:
        if pattern in (".", "./"):
            matches: Iterable[Path] = [project.root_path]
        else:
            matches = sorted(project.root_path.glob(pattern.rstrip("/")))
        for match in matches:
            if "node_modules" in match.parts:
                continue
            if (match / "package.json").is_file() and match not in locations:
                locations.append(match)
    return [PackageNode.load(location) for location in locations]


def load_workspace(root: Path) -> tuple[Project, PackageGraph]:
    project = Project.load(root)
    return project, PackageGraph(discover_packages(project))


def filter_packages(
    graph: PackageGraph,
    scope: Sequence[str],
    ignore: Sequence[str] = (),
) -> List[PackageNode]:
    """Select packages whose name matches any ``scope`` glob and no ``ignore`` glob."""

    selected: List[PackageNode] = []
    for node in graph:
        if scope and not any(fnmatch.fnmatchcase(node.name, pattern) for pattern in scope):
            continue
        if any(fnmatch.fnmatchcase(node.name, pattern) for pattern in ignore):
            continue
        selected.append(node)
    return selected
