"""Registry adapters used to pack, publish and tag packages."""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
import tarfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..errors import RegistryError
from ..graph.package import PackageNode, PackedArtifact

logger = logging.getLogger(__name__)


class RegistryAdapter(ABC):
    name: str

    @abstractmethod
    def pack(self, pkg: PackageNode, directory: Path, destination: Path) -> PackedArtifact:
        ...

    @abstractmethod
    def publish(self, pkg: PackageNode, tarball: Path, tag: str) -> None:
        ...

    @abstractmethod
    def dist_tag_add(self, spec: str, tag: str) -> None:
        ...

    @abstractmethod
    def dist_tag_remove(self, spec: str, tag: str) -> None:
        ...


class NpmCliRegistry(RegistryAdapter):
    """Delegates every operation to the ``npm`` executable."""

    name = "npm"

    def __init__(
        self,
        registry: str,
        *,
        executable: str = "npm",
        env: Optional[Dict[str, str]] = None,
    ) -> None:
        self.registry = registry
        self.executable = executable
        self.env = env or {}

    def pack(self, pkg: PackageNode, directory: Path, destination: Path) -> PackedArtifact:
        destination.mkdir(parents=True, exist_ok=True)
        stdout = self._run(
            ["pack", "--json", "--ignore-scripts", "--pack-destination", str(destination)],
            cwd=directory,
        )
        try:
            payload = json.loads(stdout)
        except json.JSONDecodeError as exc:
            raise RegistryError(f"Unexpected npm pack output for {pkg.name}: {stdout[:200]}") from exc
        entry = payload[0] if isinstance(payload, list) else payload
        filename = str(entry["filename"])
        return PackedArtifact(
            tarball=destination / filename,
            filename=filename,
            name=str(entry.get("name", pkg.name)),
            version=str(entry.get("version", pkg.version)),
            size=entry.get("size"),
            unpacked_size=entry.get("unpackedSize"),
            shasum=entry.get("shasum"),
            integrity=entry.get("integrity"),
            files=[str(item.get("path")) for item in entry.get("files", [])],
        )

    def publish(self, pkg: PackageNode, tarball: Path, tag: str) -> None:
        args = ["publish", str(tarball), "--tag", tag, "--ignore-scripts"]
        access = pkg.publish_config.get("access")
        if access:
            args += ["--access", str(access)]
        self._run(args, cwd=pkg.location)

    def dist_tag_add(self, spec: str, tag: str) -> None:
        self._run(["dist-tag", "add", spec, tag])

    def dist_tag_remove(self, spec: str, tag: str) -> None:
        self._run(["dist-tag", "rm", spec, tag])

    def _run(self, args: List[str], cwd: Optional[Path] = None) -> str:
        command = [self.executable, *args, "--registry", self.registry]
        logger.debug("executing %s", " ".join(command))
        try:
            proc = subprocess.run(
                command,
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                check=False,
                env={**os.environ, **self.env},
            )
        except OSError as exc:
            raise RegistryError(f"Unable to execute {self.executable}: {exc}") from exc
        if proc.returncode != 0:
            raise RegistryError(
                f"npm {args[0]} exited with status {proc.returncode}: {proc.stderr.strip() or proc.stdout.strip()}"
            )
        return proc.stdout


class InMemoryRegistry(RegistryAdapter):
    """Records published versions and dist-tags without touching the network.

    Packing still writes a real tarball so the artifact can be inspected.
    """

    name = "memory"

    def __init__(self) -> None:
        self.versions: Dict[str, List[str]] = {}
        self.dist_tags: Dict[str, Dict[str, str]] = {}
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def pack(self, pkg: PackageNode, directory: Path, destination: Path) -> PackedArtifact:
        destination.mkdir(parents=True, exist_ok=True)
        filename = f"{pkg.name.lstrip('@').replace('/', '-')}-{pkg.version}.tgz"
        tarball = destination / filename
        sources = [
            path
            for path in sorted(directory.rglob("*"))
            if path.is_file() and "node_modules" not in path.parts and path.suffix != ".tgz"
        ]
        files: List[str] = []
        with tarfile.open(tarball, "w:gz") as archive:
            for path in sources:
                relative = path.relative_to(directory).as_posix()
                archive.add(path, arcname=f"package/{relative}")
                files.append(relative)
        self._record("pack", pkg.name)
        return PackedArtifact(
            tarball=tarball,
            filename=filename,
            name=pkg.name,
            version=pkg.version,
            size=tarball.stat().st_size,
            files=files,
        )

    def publish(self, pkg: PackageNode, tarball: Path, tag: str) -> None:
        if not tarball.exists():
            raise RegistryError(f"Tarball not found: {tarball}")
        with self._lock:
            published = self.versions.setdefault(pkg.name, [])
            if pkg.version in published:
                raise RegistryError(f"Cannot publish over previously published version {pkg.name}@{pkg.version}")
            published.append(pkg.version)
            self.dist_tags.setdefault(pkg.name, {})[tag] = pkg.version
            self.calls.append(("publish", pkg.name, tag))

    def dist_tag_add(self, spec: str, tag: str) -> None:
        name, version = split_spec(spec)
        with self._lock:
            if version not in self.versions.get(name, []):
                raise RegistryError(f"{spec} is not published")
            self.dist_tags.setdefault(name, {})[tag] = version
            self.calls.append(("dist-tag add", spec, tag))

    def dist_tag_remove(self, spec: str, tag: str) -> None:
        name, _ = split_spec(spec)
        with self._lock:
            tags = self.dist_tags.get(name, {})
            if tag not in tags:
                raise RegistryError(f"{name} is not tagged with {tag}")
            del tags[tag]
            self.calls.append(("dist-tag rm", spec, tag))

    def tagged(self, tag: str) -> Dict[str, str]:
        """Return ``{name: version}`` for every package carrying ``tag``."""

        return {name: tags[tag] for name, tags in self.dist_tags.items() if tag in tags}

    def _record(self, *call: str) -> None:
        with self._lock:
            self.calls.append(call)


def split_spec(spec: str) -> tuple[str, str]:
    name, sep, version = spec.rpartition("@")
    if not sep or not name:
        raise ValueError(f"Expected name@version (got '{spec}')")
    return name, version


def build_registry(name: str, *, registry: str, env: Optional[Dict[str, str]] = None) -> RegistryAdapter:
    lowered = (name or "npm").lower()
    if lowered == "npm":
        if shutil.which("npm") is None:
            raise RegistryError("npm executable not found on PATH")
        return NpmCliRegistry(registry=registry, env=env)
    if lowered in ("memory", "dry-run", "noop"):
        return InMemoryRegistry()
    raise ValueError(f"Unknown registry adapter '{name}'")


def format_packed(artifact: PackedArtifact) -> Sequence[str]:
    """Render a packed tarball summary for the log."""

    lines = [f"package: {artifact.name}@{artifact.version}"]
    lines.extend(f"  {path}" for path in artifact.files)
    lines.append(f"filename: {artifact.filename}")
    if artifact.size is not None:
        lines.append(f"package size: {artifact.size} B")
    if artifact.unpacked_size is not None:
        lines.append(f"unpacked size: {artifact.unpacked_size} B")
    if artifact.shasum:
        lines.append(f"shasum: {artifact.shasum}")
    if artifact.integrity:
        lines.append(f"integrity: {artifact.integrity}")
    lines.append(f"total files: {len(artifact.files)}")
    return lines
