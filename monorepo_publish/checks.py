"""Preconditions verified before anything is mutated."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .errors import GitError, ValidationError, WorkingTreeDirty
from .git import GitClient
from .graph.package import PackageNode
from .registry.access import AccessClient, verify_package_access
from .schemas.options import DEFAULT_REGISTRY, YARN_REGISTRY, PublishOptions, normalize_registry

logger = logging.getLogger(__name__)


def validate_options(options: PublishOptions) -> None:
    if not options.scope:
        raise ValidationError("--scope argument is required", code="ENOSCOPE")


def resolve_registry(options: PublishOptions) -> PublishOptions:
    """Return options whose registry is normalized; the Yarn proxy is swapped for npm."""

    registry = options.effective_registry
    if registry == normalize_registry(YARN_REGISTRY):
        logger.warning("Yarn's registry proxy is broken, replacing with public npm registry")
        logger.warning("If you don't have an npm token, you should exit and run `npm login`")
        registry = DEFAULT_REGISTRY
    if registry == options.registry:
        return options
    return options.model_copy(update={"registry": registry})


def verify_registry_access(
    options: PublishOptions,
    packages: Sequence[PackageNode],
    client: Optional[AccessClient],
) -> Optional[str]:
    """Confirm the current user may publish ``packages``.

    Returns the verified username, or ``None`` when verification was skipped.
    """

    if options.effective_registry != DEFAULT_REGISTRY:
        logger.warning("Skipping all user and access validation due to third-party registry")
        logger.warning("Make sure you're authenticated properly ¯\\_(ツ)_/¯")
        return None
    if not options.verify_access or client is None:
        return None

    username = client.whoami()
    if not username:
        logger.warning("Unable to determine the npm user, skipping package access verification")
        return None
    verify_package_access(client, packages, username)
    logger.info("verified write access for %s", username)
    return username


def verify_working_tree_clean(git: GitClient) -> None:
    description = git.describe_ref()
    if description.is_dirty:
        try:
            changed = ", ".join(git.changed_files())
        except GitError:
            changed = ""
        raise WorkingTreeDirty(changed)
