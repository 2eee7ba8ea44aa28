from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from monorepo_publish.errors import GitError
from monorepo_publish.git import RefDescription
from monorepo_publish.graph import PackageGraph, Project, load_workspace
from monorepo_publish.registry import InMemoryRegistry


def write_package(
    root: Path,
    name: str,
    version: str = "1.0.0",
    *,
    dependencies: Optional[Dict[str, str]] = None,
    dev_dependencies: Optional[Dict[str, str]] = None,
    directory: Optional[str] = None,
    license: bool = False,
    **extra: object,
) -> Path:
    location = root / "packages" / (directory or name.split("/")[-1])
    location.mkdir(parents=True, exist_ok=True)
    manifest: Dict[str, object] = {"name": name, "version": version}
    if dependencies:
        manifest["dependencies"] = dependencies
    if dev_dependencies:
        manifest["devDependencies"] = dev_dependencies
    manifest.update(extra)
    (location / "package.json").write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")
    (location / "index.js").write_text(f"module.exports = {json.dumps(name)};\n", encoding="utf-8")
    if license:
        (location / "LICENSE").write_text("package license\n", encoding="utf-8")
    return location


def read_manifest(location: Path) -> Dict[str, object]:
    return json.loads((location / "package.json").read_text(encoding="utf-8"))


class FakeGit:
    def __init__(self, cwd: Path, *, dirty: bool = False, sha: Optional[str] = "deadbeefcafe") -> None:
        self.cwd = cwd
        self.dirty = dirty
        self.sha = sha
        self.checkout_error: Optional[GitError] = None
        self.checkouts: List[List[str]] = []

    def describe_ref(self) -> RefDescription:
        return RefDescription(sha="deadbee", last_tag_name="v1.0.0", ref_count=0, is_dirty=self.dirty)

    def current_sha(self) -> str:
        if self.sha is None:
            raise GitError("fatal: not a git repository")
        return self.sha

    def checkout(self, paths: List[str]) -> None:
        if self.checkout_error is not None:
            raise self.checkout_error
        self.checkouts.append(list(paths))

    def changed_files(self) -> List[str]:
        return ["packages/a/package.json"] if self.dirty else []


@pytest.fixture()
def workspace_root(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    root.mkdir()
    (root / "package.json").write_text(
        json.dumps({"name": "root", "private": True, "version": "0.0.0"}, indent=2) + "\n",
        encoding="utf-8",
    )
    (root / "lerna.json").write_text(json.dumps({"packages": ["packages/*"], "version": "1.0.0"}), encoding="utf-8")
    (root / "LICENSE").write_text("MIT License\n", encoding="utf-8")
    write_package(root, "a")
    write_package(root, "b", dependencies={"a": "^1.0.0"})
    write_package(root, "c", dependencies={"b": "file:../b"})
    return root


@pytest.fixture()
def workspace(workspace_root: Path) -> tuple[Project, PackageGraph]:
    return load_workspace(workspace_root)


@pytest.fixture()
def registry() -> InMemoryRegistry:
    return InMemoryRegistry()


@pytest.fixture()
def git(workspace_root: Path) -> FakeGit:
    return FakeGit(workspace_root.resolve())
