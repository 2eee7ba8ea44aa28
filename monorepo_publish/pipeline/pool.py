"""Bounded worker pool that drives batches one after another."""

from __future__ import annotations

import concurrent.futures
import logging
from typing import Callable, List, Optional, Sequence, TypeVar

from ..errors import StageError
from ..graph.package import PackageNode

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_batches(
    batches: Sequence[Sequence[PackageNode]],
    concurrency: int,
    mapper: Callable[[PackageNode], T],
    *,
    stage: str,
    on_failure: Optional[Callable[[PackageNode, BaseException], object]] = None,
) -> List[T]:
    """Apply ``mapper`` to every package, batch by batch.

    Members of a batch run concurrently on at most ``concurrency`` threads;
    the next batch starts only once the current one has fully completed. On
    the first failure, members that have not started are cancelled, running
    members finish, and a ``StageError`` naming the failed package is raised.
    """

    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")

    outputs: List[T] = []
    for index, batch in enumerate(batches):
        if not batch:
            continue
        logger.debug("%s: batch %d of %d (%d packages)", stage, index + 1, len(batches), len(batch))
        failure: Optional[tuple[PackageNode, BaseException]] = None
        with concurrent.futures.ThreadPoolExecutor(max_workers=min(concurrency, len(batch))) as executor:
            futures = {executor.submit(mapper, pkg): pkg for pkg in batch}
            for future in concurrent.futures.as_completed(futures):
                if future.cancelled():
                    continue
                pkg = futures[future]
                try:
                    outputs.append(future.result())
                except Exception as exc:
                    logger.error("%s failed for %s: %s", stage, pkg.name, exc)
                    if on_failure is not None:
                        on_failure(pkg, exc)
                    if failure is None:
                        failure = (pkg, exc)
                        for pending in futures:
                            pending.cancel()
        if failure is not None:
            pkg, exc = failure
            raise StageError(stage, pkg.name, exc, list(outputs)) from exc
    return outputs
