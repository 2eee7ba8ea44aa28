"""Command-line entry point for publishing a workspace."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence

from dotenv import load_dotenv
from pydantic import ValidationError as OptionsValidationError

from .errors import PublishError, StageError
from .git import GitClient
from .graph.workspace import load_workspace
from .lifecycle import LifecycleRunner
from .pipeline.publish import PublishCommand
from .registry.access import AccessClient
from .registry.adapters import build_registry
from .schemas.options import PublishOptions, load_lerna_config

logger = logging.getLogger("monorepo_publish")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.loglevel.upper()),
        format="%(levelname)s %(name)s: %(message)s",
    )

    workspace = Path(args.workspace_root).resolve()
    load_dotenv(workspace / ".env")

    try:
        options = _build_options(args, workspace)
    except (OptionsValidationError, ValueError) as exc:
        parser.error(str(exc))
        return 2

    try:
        project, graph = load_workspace(workspace)
        command = PublishCommand(
            project,
            graph,
            options,
            registry=build_registry(args.registry_adapter, registry=options.effective_registry),
            git=GitClient(workspace),
            access=AccessClient(options.effective_registry),
            lifecycle=LifecycleRunner(active_event=options.lifecycle_event),
        )
        if args.plan:
            _print_json(
                {
                    "stages": command.planned_stages(),
                    "batches": [[pkg.name for pkg in batch] for batch in command.state.batches],
                }
            )
            return 0
        report = command.execute()
    except StageError as exc:
        logger.error("%s", exc)
        if exc.__cause__ is not None:
            logger.debug("caused by %r", exc.__cause__)
        if args.json:
            _print_json({"error": str(exc), "stage": exc.stage, "package": exc.package})
        return 1
    except (PublishError, FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        if args.json:
            _print_json({"error": str(exc)})
        return 1

    if args.json:
        _print_json(report.to_dict())
    elif report.count:
        print("Successfully published:")
        print(os.linesep.join(report.summary_lines()))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="monorepo-publish",
        description="Publish packages in the current project for the current version.",
    )
    parser.add_argument("--scope", action="append", help="Package name glob to publish (repeatable).")
    parser.add_argument("--ignore", action="append", help="Package name glob to exclude (repeatable).")
    parser.add_argument(
        "-c",
        "--canary",
        action="store_true",
        default=None,
        help="Publish packages after every successful merge using the sha as part of the tag.",
    )
    parser.add_argument("--contents", help="Subdirectory to publish. Must apply to ALL packages.")
    parser.add_argument("--dist-tag", help="Publish packages with the specified npm dist-tag.")
    parser.add_argument("--npm-tag", help=argparse.SUPPRESS)
    parser.add_argument("--git-head", help="Explicit SHA to set as gitHead when packing tarballs.")
    parser.add_argument("--registry", help="Use the specified registry for all npm client operations.")
    parser.add_argument(
        "--require-scripts",
        action="store_true",
        default=None,
        help="Execute ./scripts/prepublish.js and ./scripts/postpublish.js, relative to package root.",
    )
    parser.add_argument(
        "--git-reset",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Reset changes to working tree after publishing is complete.",
    )
    parser.add_argument("--temp-tag", action="store_true", default=None, help="Create a temporary tag while publishing.")
    parser.add_argument(
        "--verify-access",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Verify package read-write access for current npm user.",
    )
    parser.add_argument("--exact", action="store_true", default=None, help="Pin sibling versions without a caret.")
    parser.add_argument("--concurrency", type=int, help="Number of concurrent publish operations.")
    parser.add_argument("--pack-concurrency", type=int, help="Number of concurrent pack operations.")
    parser.add_argument("--no-sort", action="store_true", default=None, help="Do not publish in topological order.")
    parser.add_argument("--reject-cycles", action="store_true", default=None, help="Fail on dependency cycles.")
    parser.add_argument(
        "--registry-adapter",
        default="npm",
        choices=["npm", "memory"],
        help="Backend used for pack/publish/dist-tag; 'memory' performs a dry run.",
    )
    parser.add_argument("--workspace-root", default=".")
    parser.add_argument("--plan", action="store_true", help="Print the stage plan and batches, then exit.")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON.")
    parser.add_argument(
        "--loglevel",
        default="info",
        choices=["debug", "info", "warning", "error"],
    )
    return parser


_FLAG_FIELDS = (
    "canary",
    "contents",
    "dist_tag",
    "git_head",
    "registry",
    "require_scripts",
    "git_reset",
    "temp_tag",
    "verify_access",
    "exact",
    "concurrency",
    "pack_concurrency",
    "no_sort",
    "reject_cycles",
)


def _build_options(args: argparse.Namespace, workspace: Path) -> PublishOptions:
    values: Dict[str, object] = dict(load_lerna_config(workspace))
    if args.npm_tag and not args.dist_tag:
        logger.warning("--npm-tag has been renamed --dist-tag")
        args.dist_tag = args.npm_tag
    for name in _FLAG_FIELDS:
        value = getattr(args, name)
        if value is not None:
            values[name] = value
    if args.scope:
        values["scope"] = list(args.scope)
    if args.ignore:
        values["ignore"] = list(args.ignore)
    # npm exports the running script name; used to avoid recursive publish lifecycles
    values["lifecycle_event"] = os.environ.get("npm_lifecycle_event")
    return PublishOptions(**values)


def _print_json(payload: object) -> None:
    json.dump(payload, sys.stdout, indent=2)
    sys.stdout.write("\n")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
