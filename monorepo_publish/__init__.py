"""Batched, dependency-ordered publishing of monorepo packages."""

__version__ = "0.1.0"
from .errors import (
    CycleError,
    GitError,
    LifecycleError,
    PublishError,
    RegistryError,
    StageError,
    ValidationError,
    WorkingTreeDirty,
)
from .git import GitClient
from .graph import PackageGraph, PackageNode, Project, batch_packages, load_workspace
from .lifecycle import LifecycleRunner
from .pipeline import PackageResult, PublishCommand, PublishReport, publish
from .registry import AccessClient, InMemoryRegistry, NpmCliRegistry, RegistryAdapter, build_registry
from .schemas import PublishOptions

__all__ = [
    "__version__",
    "AccessClient",
    "CycleError",
    "GitClient",
    "GitError",
    "InMemoryRegistry",
    "LifecycleError",
    "LifecycleRunner",
    "NpmCliRegistry",
    "PackageGraph",
    "PackageNode",
    "PackageResult",
    "Project",
    "PublishCommand",
    "PublishError",
    "PublishOptions",
    "PublishReport",
    "RegistryAdapter",
    "RegistryError",
    "StageError",
    "ValidationError",
    "WorkingTreeDirty",
    "batch_packages",
    "build_registry",
    "load_workspace",
    "publish",
]
