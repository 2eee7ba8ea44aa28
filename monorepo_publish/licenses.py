"""Temporary license files for packages that ship without one."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .graph.package import PackageNode
from .graph.workspace import find_license
from .utils import oxford_join, pack_location

logger = logging.getLogger(__name__)


def packages_without_license(
    packages: Iterable[PackageNode],
    contents: Optional[str] = None,
) -> List[PackageNode]:
    """Packages whose packed directory holds no license file."""

    return [pkg for pkg in packages if find_license(pack_location(pkg, contents)) is None]


def missing_license_message(names: Sequence[str]) -> str:
    noun = "Packages" if len(names) > 1 else "Package"
    verb = "are" if len(names) > 1 else "is"
    return f"{noun} {oxford_join(names)} {verb} missing a license."


def warn_unlicensed(packages: Sequence[PackageNode]) -> None:
    logger.warning(
        "ENOLICENSE %s\n%s\n%s",
        missing_license_message([pkg.name for pkg in packages]),
        "One way to fix this is to add a LICENSE.md file to the root of this repository.",
        "See https://choosealicense.com for additional guidance.",
    )


def create_temp_licenses(
    license_path: Optional[Path],
    packages: Sequence[PackageNode],
    contents: Optional[str] = None,
) -> List[Path]:
    """Copy the root license next to each package's packed files.

    Returns the created paths. When a copy fails, the files created so far
    are removed before the error propagates.
    """

    if not license_path or not packages:
        return []
    created: List[Path] = []
    try:
        for pkg in packages:
            target = pack_location(pkg, contents) / license_path.name
            if target.exists():
                # only files created here are removed later
                logger.debug("keeping existing %s", target)
                continue
            shutil.copyfile(license_path, target)
            created.append(target)
    except OSError:
        try:
            remove_temp_licenses(created)
        except OSError as exc:
            logger.error("error removing temporary license files: %s", exc)
        raise
    logger.debug("created %d temporary license files", len(created))
    return created


def remove_temp_licenses(paths: Iterable[Path]) -> None:
    for path in paths:
        path.unlink(missing_ok=True)
