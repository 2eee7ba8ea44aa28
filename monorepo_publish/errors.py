"""Exception types raised by the publish pipeline."""

from __future__ import annotations

from typing import List, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .pipeline.models import PackageResult


class PublishError(RuntimeError):
    """Base error carrying a short machine-readable code prefix."""

    code = "EPUBLISH"

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        if code:
            self.code = code

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class ValidationError(PublishError):
    """Raised when a precondition fails before anything is mutated."""

    code = "EVALIDATION"


class WorkingTreeDirty(ValidationError):
    code = "EUNCOMMIT"

    def __init__(self, description: str = "") -> None:
        message = "Working tree has uncommitted changes, please commit or remove changes before continuing"
        if description:
            message = f"{message} ({description})"
        super().__init__(message)


class CycleError(ValidationError):
    """Raised when batching meets a dependency cycle and cycles are rejected."""

    code = "ECYCLE"

    def __init__(self, packages: Sequence[str], cycles: Sequence[Sequence[str]]) -> None:
        self.packages: List[str] = list(packages)
        self.cycles: List[List[str]] = [list(cycle) for cycle in cycles]
        rendered = "; ".join(" -> ".join(cycle) for cycle in self.cycles) or ", ".join(self.packages)
        super().__init__(f"Dependency cycles detected, you should fix these! {rendered}")


class GitError(PublishError):
    code = "EGIT"


class RegistryError(PublishError):
    code = "EREGISTRY"


class LifecycleError(PublishError):
    code = "ELIFECYCLE"


class StageError(PublishError):
    """A package failed inside a batched stage.

    The triggering exception is chained as ``__cause__``; ``results`` holds the
    per-package outcomes settled before the run stopped.
    """

    code = "ESTAGE"

    def __init__(
        self,
        stage: str,
        package: str,
        cause: BaseException,
        results: Optional[Sequence["PackageResult"]] = None,
    ) -> None:
        self.stage = stage
        self.package = package
        self.results: List["PackageResult"] = list(results or [])
        super().__init__(f"{stage} failed for {package}: {cause}")


__all__ = [
    "CycleError",
    "GitError",
    "LifecycleError",
    "PublishError",
    "RegistryError",
    "StageError",
    "ValidationError",
    "WorkingTreeDirty",
]
