"""Registry collaborators: pack/publish/dist-tag adapters and access queries."""

from .access import AccessClient, verify_package_access
from .adapters import (
    InMemoryRegistry,
    NpmCliRegistry,
    RegistryAdapter,
    build_registry,
    format_packed,
    split_spec,
)

__all__ = [
    "AccessClient",
    "InMemoryRegistry",
    "NpmCliRegistry",
    "RegistryAdapter",
    "build_registry",
    "format_packed",
    "split_spec",
    "verify_package_access",
]
