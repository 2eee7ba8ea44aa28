"""Schema definitions for publish configuration."""

from .options import (
    CANARY_DIST_TAG,
    DEFAULT_DIST_TAG,
    DEFAULT_REGISTRY,
    TEMP_DIST_TAG,
    PublishOptions,
    load_lerna_config,
    normalize_registry,
    resolve_dist_tag,
)

__all__ = [
    "CANARY_DIST_TAG",
    "DEFAULT_DIST_TAG",
    "DEFAULT_REGISTRY",
    "TEMP_DIST_TAG",
    "PublishOptions",
    "load_lerna_config",
    "normalize_registry",
    "resolve_dist_tag",
]
