"""Package nodes backed by ``package.json`` manifests."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

DEPENDENCY_COLLECTIONS = (
    "dependencies",
    "optionalDependencies",
    "devDependencies",
    "peerDependencies",
)

_DIRECTORY_PREFIXES = ("file:", "link:")
_OTHER_PREFIXES = ("git+", "git:", "github:", "http:", "https:", "npm:")
LINKABLE_KINDS = ("version", "directory")
_INDENT_RE = re.compile(r"^([ \t]+)\S", re.MULTILINE)


def classify_spec(spec: str) -> str:
    """Return ``directory``, ``version`` or ``other`` for a dependency specifier."""

    value = spec.strip()
    if value.startswith(_DIRECTORY_PREFIXES) or value.startswith(("./", "../", "/")):
        return "directory"
    if not value or value.startswith(_OTHER_PREFIXES) or "/" in value:
        return "other"
    # semver ranges and registry tags resolve through the registry
    return "version"


@dataclass(frozen=True)
class ResolvedSpec:
    """A local dependency specifier as found in a manifest."""

    name: str
    spec: str
    kind: str  # "version" | "directory" | "other"


@dataclass(slots=True)
class PackedArtifact:
    tarball: Path
    filename: str
    name: str
    version: str
    size: Optional[int] = None
    unpacked_size: Optional[int] = None
    shasum: Optional[str] = None
    integrity: Optional[str] = None
    files: List[str] = field(default_factory=list)


class PackageNode:
    """One publishable unit of the monorepo.

    ``manifest`` is mutated in place by the rewriters; ``packed`` is set once
    by the pack stage.
    """

    def __init__(
        self,
        manifest: Dict[str, Any],
        location: Path,
        local_dependencies: Optional[Dict[str, ResolvedSpec]] = None,
    ) -> None:
        self.manifest = manifest
        self.location = Path(location)
        self.local_dependencies: Dict[str, ResolvedSpec] = dict(local_dependencies or {})
        self._packed: Optional[PackedArtifact] = None
        self.indent: str = "  "

    def __repr__(self) -> str:
        return f"PackageNode({self.name}@{self.version})"

    @classmethod
    def load(cls, location: Path) -> "PackageNode":
        manifest_path = Path(location) / "package.json"
        text = manifest_path.read_text(encoding="utf-8")
        node = cls(json.loads(text), Path(location))
        node.indent = detect_indent(text)
        return node

    @property
    def name(self) -> str:
        return str(self.manifest.get("name") or "")

    @property
    def version(self) -> str:
        return str(self.manifest.get("version", ""))

    @property
    def private(self) -> bool:
        return bool(self.manifest.get("private", False))

    @property
    def manifest_location(self) -> Path:
        return self.location / "package.json"

    @property
    def publish_config(self) -> Dict[str, Any]:
        return dict(self.manifest.get("publishConfig") or {})

    @property
    def scripts(self) -> Dict[str, str]:
        return dict(self.manifest.get("scripts") or {})

    @property
    def packed(self) -> Optional[PackedArtifact]:
        return self._packed

    @packed.setter
    def packed(self, artifact: PackedArtifact) -> None:
        if self._packed is not None:
            raise RuntimeError(f"{self.name} has already been packed")
        self._packed = artifact

    def get(self, key: str, default: Any = None) -> Any:
        return self.manifest.get(key, default)

    def set(self, key: str, value: Any) -> "PackageNode":
        self.manifest[key] = value
        return self

    def dependency_specs(self, collections: tuple[str, ...] = DEPENDENCY_COLLECTIONS) -> Dict[str, str]:
        specs: Dict[str, str] = {}
        for collection in collections:
            for dep_name, spec in (self.manifest.get(collection) or {}).items():
                specs.setdefault(dep_name, str(spec))
        return specs

    def update_local_dependency(
        self,
        resolved: ResolvedSpec,
        version: str,
        save_prefix: str,
        kinds: Sequence[str] = LINKABLE_KINDS,
    ) -> bool:
        """Point ``resolved`` at ``version`` in every collection declaring it.

        Only specifiers whose own kind is in ``kinds`` are rewritten; returns
        whether anything changed.
        """

        changed = False
        for collection in DEPENDENCY_COLLECTIONS:
            deps = self.manifest.get(collection)
            if not deps or resolved.name not in deps:
                continue
            if classify_spec(str(deps[resolved.name])) in kinds:
                deps[resolved.name] = f"{save_prefix}{version}"
                changed = True
        return changed

    def serialize(self) -> Path:
        path = self.manifest_location
        path.write_text(json.dumps(self.manifest, indent=self.indent, ensure_ascii=False) + "\n", encoding="utf-8")
        return path

    def refresh(self) -> "PackageNode":
        # lifecycle scripts may have rewritten package.json on disk
        text = self.manifest_location.read_text(encoding="utf-8")
        self.manifest = json.loads(text)
        self.indent = detect_indent(text)
        return self


def detect_indent(text: str) -> str:
    """Indentation of the first indented line, two spaces when there is none."""

    match = _INDENT_RE.search(text)
    return match.group(1) if match else "  "
