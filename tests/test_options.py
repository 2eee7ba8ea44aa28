from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from monorepo_publish.schemas import PublishOptions
from monorepo_publish.schemas.options import (
    DEFAULT_REGISTRY,
    load_lerna_config,
    normalize_registry,
    resolve_dist_tag,
)


def test_defaults() -> None:
    options = PublishOptions(scope=["*"])
    assert options.git_reset is True
    assert options.verify_access is True
    assert options.temp_tag is False
    assert options.concurrency >= 4
    assert options.effective_pack_concurrency == max(1, options.concurrency // 2)
    assert options.effective_registry == DEFAULT_REGISTRY
    assert options.global_dist_tag is None


def test_save_prefix_follows_exact() -> None:
    assert PublishOptions(scope=["*"]).save_prefix == "^"
    assert PublishOptions(scope=["*"], exact=True).save_prefix == ""


def test_options_are_frozen() -> None:
    options = PublishOptions(scope=["*"])
    with pytest.raises(ValidationError):
        options.canary = True  # type: ignore[misc]


def test_unknown_fields_are_rejected() -> None:
    with pytest.raises(ValidationError):
        PublishOptions(scope=["*"], forcePublish=True)  # type: ignore[call-arg]


def test_concurrency_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        PublishOptions(scope=["*"], concurrency=0)


def test_blank_dist_tag_is_ignored() -> None:
    assert PublishOptions(scope=["*"], dist_tag="  ").dist_tag is None
    assert PublishOptions(scope=["*"], dist_tag=" next ").global_dist_tag == "next"


def test_canary_implies_canary_tag() -> None:
    assert PublishOptions(scope=["*"], canary=True).global_dist_tag == "canary"
    assert PublishOptions(scope=["*"], canary=True, dist_tag="beta").global_dist_tag == "beta"


@pytest.mark.parametrize(
    ("global_tag", "publish_config", "expected"),
    [
        (None, None, "latest"),
        (None, {"tag": "next"}, "next"),
        ("latest", {"tag": "next"}, "next"),
        ("beta", {"tag": "next"}, "beta"),
        ("beta", None, "beta"),
        (None, {"access": "public"}, "latest"),
    ],
)
def test_resolve_dist_tag(global_tag, publish_config, expected) -> None:
    assert resolve_dist_tag(global_tag, publish_config) == expected


def test_normalize_registry() -> None:
    assert normalize_registry(None) == DEFAULT_REGISTRY
    assert normalize_registry("https://npm.example.com") == "https://npm.example.com/"


def test_load_lerna_config_prefers_command_section(tmp_path: Path) -> None:
    (tmp_path / "lerna.json").write_text(
        json.dumps(
            {
                "packages": ["packages/*"],
                "version": "1.0.0",
                "registry": "https://top.example.com",
                "tempTag": False,
                "command": {"publish": {"tempTag": True, "distTag": "next", "ignoreChanges": ["*.md"]}},
            }
        ),
        encoding="utf-8",
    )
    config = load_lerna_config(tmp_path)
    assert config == {"registry": "https://top.example.com", "temp_tag": True, "dist_tag": "next"}
    assert PublishOptions(scope=["*"], **config).temp_tag is True


def test_load_lerna_config_missing_file(tmp_path: Path) -> None:
    assert load_lerna_config(tmp_path) == {}


def test_load_lerna_config_invalid_json(tmp_path: Path) -> None:
    (tmp_path / "lerna.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid lerna.json"):
        load_lerna_config(tmp_path)
