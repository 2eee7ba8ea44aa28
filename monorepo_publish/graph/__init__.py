"""Package graph, batching and workspace discovery."""

from .batch import batch_packages, find_cycles, flatten_batches, single_batch
from .graph import ALL_EDGES, RUNTIME_EDGES, PackageGraph
from .package import PackageNode, PackedArtifact, ResolvedSpec, classify_spec
from .workspace import Project, filter_packages, find_license, load_workspace

__all__ = [
    "ALL_EDGES",
    "RUNTIME_EDGES",
    "PackageGraph",
    "PackageNode",
    "PackedArtifact",
    "Project",
    "ResolvedSpec",
    "batch_packages",
    "classify_spec",
    "filter_packages",
    "find_cycles",
    "find_license",
    "flatten_batches",
    "load_workspace",
    "single_batch",
]
