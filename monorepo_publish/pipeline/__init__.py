"""Publish pipeline: stage driver, batch worker pool and the publish command."""

from .models import PackageResult, PublishReport, RunState
from .pool import run_batches
from .publish import PublishCommand, publish
from .stages import StageSpec, included_stages, run_stages

__all__ = [
    "PackageResult",
    "PublishCommand",
    "PublishReport",
    "RunState",
    "StageSpec",
    "included_stages",
    "publish",
    "run_batches",
    "run_stages",
]
