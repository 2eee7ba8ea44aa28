"""Thin wrapper over the ``git`` executable."""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import GitError

# v1.0.0-3-gdeadbee-dirty, deadbee-dirty
_DESCRIBE_RE = re.compile(
    r"^(?:(?P<tag>.*)-(?P<count>\d+)-g)?(?P<sha>[0-9a-f]+)(?P<dirty>-dirty)?$"
)


@dataclass(frozen=True)
class RefDescription:
    sha: str
    last_tag_name: Optional[str] = None
    ref_count: int = 0
    is_dirty: bool = False


class GitClient:
    """Runs git commands inside ``cwd``; any non-zero exit raises ``GitError``."""

    def __init__(self, cwd: Path, executable: str = "git") -> None:
        self.cwd = Path(cwd)
        self.executable = executable

    def run(self, *args: str, strip: bool = True) -> str:
        command = [self.executable, *args]
        try:
            proc = subprocess.run(
                command,
                cwd=str(self.cwd),
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise GitError(f"Unable to execute {' '.join(command)}: {exc}") from exc
        if proc.returncode != 0:
            raise GitError(
                f"{' '.join(command)} exited with status {proc.returncode}: {proc.stderr.strip() or proc.stdout.strip()}"
            )
        return proc.stdout.strip() if strip else proc.stdout

    def describe_ref(self) -> RefDescription:
        output = self.run("describe", "--always", "--long", "--dirty", "--first-parent")
        return parse_describe(output)

    def current_sha(self) -> str:
        return self.run("rev-parse", "HEAD")

    def checkout(self, paths: Sequence[str]) -> None:
        if not paths:
            return
        self.run("checkout", "--", *paths)

    def changed_files(self) -> List[str]:
        # porcelain status columns are positional, keep leading spaces
        output = self.run("status", "--porcelain", strip=False)
        return [line[3:] for line in output.splitlines() if line.strip()]


def parse_describe(output: str) -> RefDescription:
    match = _DESCRIBE_RE.match(output.strip())
    if not match:
        raise GitError(f"Unable to parse git describe output {output!r}")
    count = match.group("count")
    return RefDescription(
        sha=match.group("sha"),
        last_tag_name=match.group("tag"),
        ref_count=int(count) if count else 0,
        is_dirty=bool(match.group("dirty")),
    )
