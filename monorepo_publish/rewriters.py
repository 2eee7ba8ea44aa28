"""In-memory manifest rewrites applied before packing."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from .errors import GitError
from .git import GitClient
from .graph.graph import PackageGraph
from .graph.package import PackageNode

logger = logging.getLogger(__name__)


def update_canary_versions(
    packages: Sequence[PackageNode],
    graph: PackageGraph,
    save_prefix: str,
) -> List[str]:
    """Point local dependencies at the sibling versions being published.

    Only dependencies whose target is part of ``packages`` are touched.
    Returns ``name -> dep`` descriptions of the rewritten edges.
    """

    publishing = {pkg.name for pkg in packages}
    rewritten: List[str] = []
    for pkg in packages:
        if pkg.private:
            continue
        for dep_name, resolved in pkg.local_dependencies.items():
            if dep_name not in publishing:
                continue
            sibling = graph.get(dep_name)
            if sibling is None:
                continue
            if pkg.update_local_dependency(resolved, sibling.version, save_prefix):
                rewritten.append(f"{pkg.name} -> {dep_name}@{save_prefix}{sibling.version}")
    return rewritten


def resolve_local_dependency_links(
    packages: Sequence[PackageNode],
    graph: PackageGraph,
    save_prefix: str,
) -> List[str]:
    """Replace ``file:``/``link:`` specifiers, which cannot be published, with versions."""

    rewritten: List[str] = []
    for pkg in packages:
        if pkg.private:
            continue
        for dep_name, resolved in pkg.local_dependencies.items():
            sibling = graph.get(dep_name)
            if sibling is None:
                continue
            # any collection may hold the file: or link: form
            if pkg.update_local_dependency(resolved, sibling.version, save_prefix, kinds=("directory",)):
                rewritten.append(f"{pkg.name} -> {dep_name}@{save_prefix}{sibling.version}")
    return rewritten


def annotate_git_head(
    packages: Iterable[PackageNode],
    git: Optional[GitClient],
    override: Optional[str] = None,
) -> Optional[str]:
    """Set ``gitHead`` on every manifest; returns ``None`` when no commit resolves."""

    try:
        if override:
            git_head = override
        elif git is None:
            raise GitError("no git client configured")
        else:
            git_head = git.current_sha()
    except GitError as exc:
        logger.debug("EGITHEAD %s", exc)
        logger.warning("Unable to set temporary gitHead property, it will be missing from registry metadata")
        return None

    for pkg in packages:
        # normally added by npm publish itself
        pkg.set("gitHead", git_head)
    return git_head


def serialize_changes(packages: Iterable[PackageNode]) -> None:
    for pkg in packages:
        pkg.serialize()
