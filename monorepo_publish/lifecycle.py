"""Lifecycle scripts: npm ``scripts`` entries and per-package hook files."""

from __future__ import annotations

import logging
import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from .errors import LifecycleError
from .graph.package import PackageNode

logger = logging.getLogger(__name__)

_PUBLISH_EVENT_RE = re.compile(r"^(pre|post)?publish$")


def _run_command(command: List[str], cwd: Path, env: Dict[str, str], label: str) -> None:
    logger.debug("executing %s in %s", " ".join(command), cwd)
    try:
        proc = subprocess.run(
            command,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            check=False,
            env={**os.environ, **env},
        )
    except OSError as exc:
        raise LifecycleError(f"Unable to execute {label}: {exc}") from exc
    if proc.stdout.strip():
        logger.debug("%s stdout: %s", label, proc.stdout.strip())
    if proc.returncode != 0:
        raise LifecycleError(
            f"{label} exited with status {proc.returncode}: {proc.stderr.strip() or proc.stdout.strip()}"
        )


@dataclass(frozen=True)
class PackageScript:
    """A ``scripts/<name>.js`` file shipped inside a package."""

    package: PackageNode
    name: str
    path: Path

    def run(self, executable: str = "node") -> None:
        _run_command([executable, str(self.path)], self.package.location, {}, f"{self.package.name} {self.name} script")


def find_package_script(pkg: PackageNode, name: str) -> Optional[PackageScript]:
    """Look up ``scripts/<name>.js`` relative to the package root."""

    candidate = pkg.location / "scripts" / f"{name}.js"
    if not candidate.is_file():
        logger.debug("No %s script found at %s", name, candidate)
        return None
    return PackageScript(package=pkg, name=name, path=candidate)


class LifecycleRunner:
    """Runs ``npm run <stage>`` for manifests that define the stage.

    ``active_event`` names the npm lifecycle this process is already running
    under; root publish lifecycles are skipped while it is a publish event.
    """

    def __init__(
        self,
        *,
        executable: str = "npm",
        active_event: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> None:
        self.executable = executable
        self.active_event = active_event
        self.env = env or {}

    @property
    def inside_publish_lifecycle(self) -> bool:
        return bool(self.active_event and _PUBLISH_EVENT_RE.match(self.active_event))

    def run(self, pkg: PackageNode, stage: str) -> bool:
        """Run ``stage`` for ``pkg``; returns ``False`` when the script is not defined."""

        if stage not in pkg.scripts:
            return False
        logger.info("lifecycle: %s %s", pkg.name, stage)
        _run_command(
            [self.executable, "run", stage],
            pkg.location,
            self.env,
            f"{pkg.name} {stage} lifecycle",
        )
        return True

    def run_root(self, root: PackageNode, stage: str) -> bool:
        if self.inside_publish_lifecycle:
            logger.warning("Skipping root %r because it has already been called", stage)
            return False
        return self.run(root, stage)
