"""Shared helpers used by pipeline stages."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from .graph.package import PackageNode


def oxford_join(items: Sequence[str]) -> str:
    """Join names as ``a``, ``a and b`` or ``a, b, and c``."""

    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} and {items[1]}"
    return f"{', '.join(items[:-1])}, and {items[-1]}"


def pluralize(count: int, singular: str, plural: Optional[str] = None) -> str:
    return singular if count == 1 else (plural or f"{singular}s")


def pack_location(pkg: PackageNode, contents: Optional[str]) -> Path:
    return (pkg.location / contents).resolve() if contents else pkg.location
