"""Ordered stage descriptors executed by a single driver loop."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S")


def _always(_state: object) -> bool:
    return True


@dataclass(frozen=True)
class StageSpec(Generic[S]):
    """One pipeline step.

    ``when`` decides inclusion against the run state at the moment the stage
    is reached. ``cleanup`` stages also run after an earlier stage failed;
    their own errors are logged and the original failure is re-raised.
    """

    name: str
    run: Callable[[S], object]
    when: Callable[[S], bool] = _always
    cleanup: bool = False


def included_stages(stages: Sequence[StageSpec[S]], state: S) -> List[str]:
    return [stage.name for stage in stages if stage.when(state)]


def run_stages(stages: Sequence[StageSpec[S]], state: S) -> List[str]:
    """Run ``stages`` in order and return the names of those that completed."""

    completed: List[str] = []
    failure: Optional[BaseException] = None
    for stage in stages:
        if failure is not None and not stage.cleanup:
            continue
        if not stage.when(state):
            logger.debug("stage %s skipped", stage.name)
            continue
        logger.debug("stage %s started", stage.name)
        try:
            stage.run(state)
        except Exception as exc:
            if failure is None:
                failure = exc
            else:
                logger.error("cleanup stage %s failed: %s", stage.name, exc)
            continue
        completed.append(stage.name)
    if failure is not None:
        raise failure
    return completed
