"""Pydantic models describing publish configuration."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_REGISTRY = "https://registry.npmjs.org/"
YARN_REGISTRY = "https://registry.yarnpkg.com"
DEFAULT_DIST_TAG = "latest"
CANARY_DIST_TAG = "canary"
TEMP_DIST_TAG = "lerna-temp"


def _default_concurrency() -> int:
    return max(os.cpu_count() or 1, 4)


class PublishOptions(BaseModel):
    """Immutable configuration record threaded through every pipeline stage."""

    scope: List[str] = Field(default_factory=list, description="Package name globs selected for publishing.")
    ignore: List[str] = Field(default_factory=list, description="Package name globs excluded from publishing.")
    canary: bool = False
    dist_tag: Optional[str] = None
    temp_tag: bool = False
    git_reset: bool = True
    verify_access: bool = True
    require_scripts: bool = False
    contents: Optional[str] = Field(default=None, description="Subdirectory to pack, relative to each package.")
    concurrency: int = Field(default_factory=_default_concurrency, ge=1)
    pack_concurrency: Optional[int] = Field(default=None, ge=1)
    exact: bool = False
    registry: Optional[str] = None
    git_head: Optional[str] = None
    no_sort: bool = False
    reject_cycles: bool = False
    lifecycle_event: Optional[str] = Field(
        default=None,
        description="Name of the npm lifecycle currently executing this run, if any.",
    )

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("dist_tag")
    @classmethod
    def _strip_dist_tag(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @property
    def save_prefix(self) -> str:
        # https://docs.npmjs.com/misc/config#save-prefix
        return "" if self.exact else "^"

    @property
    def effective_pack_concurrency(self) -> int:
        if self.pack_concurrency:
            return self.pack_concurrency
        return max(1, self.concurrency // 2)

    @property
    def effective_registry(self) -> str:
        return normalize_registry(self.registry)

    @property
    def global_dist_tag(self) -> Optional[str]:
        """Tag requested for the whole run; ``None`` defers to ``publishConfig.tag`` or ``latest``."""

        if self.dist_tag:
            return self.dist_tag
        if self.canary:
            return CANARY_DIST_TAG
        return None


def normalize_registry(registry: Optional[str]) -> str:
    if not registry:
        return DEFAULT_REGISTRY
    value = registry.strip()
    if not value.endswith("/"):
        value += "/"
    return value


def resolve_dist_tag(global_tag: Optional[str], publish_config: Optional[Mapping[str, Any]]) -> str:
    """Pick the dist-tag for one package.

    An explicit non-default global tag always wins; otherwise a per-package
    ``publishConfig.tag`` applies, then the global tag, then ``latest``.
    """

    tag = global_tag or DEFAULT_DIST_TAG
    if tag == DEFAULT_DIST_TAG and publish_config and publish_config.get("tag"):
        return str(publish_config["tag"])
    return tag


_LERNA_KEY_MAP = {
    "distTag": "dist_tag",
    "npmTag": "dist_tag",
    "tempTag": "temp_tag",
    "gitReset": "git_reset",
    "verifyAccess": "verify_access",
    "requireScripts": "require_scripts",
    "packConcurrency": "pack_concurrency",
    "gitHead": "git_head",
    "noSort": "no_sort",
    "rejectCycles": "reject_cycles",
}


def load_lerna_config(root: Path) -> Dict[str, object]:
    """Read publish options from ``lerna.json``.

    Values under ``command.publish`` take precedence over top-level keys.
    Unknown keys are dropped.
    """

    path = root / "lerna.json"
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid lerna.json at {path}: {exc}") from exc

    known = set(PublishOptions.model_fields)
    merged: Dict[str, object] = {}
    command_section = (payload.get("command") or {}).get("publish") or {}
    for section in (payload, command_section):
        for key, value in section.items():
            field_name = _LERNA_KEY_MAP.get(key, key)
            if field_name in known and field_name != "lifecycle_event":
                merged[field_name] = value
    return merged
