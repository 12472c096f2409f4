"""Error taxonomy for grid mutations."""

from __future__ import annotations

from dataclasses import dataclass


class GridError(Exception):
    """Base class for every error raised by the grid engine."""


class CapacityExceeded(GridError):
    def __init__(self, total: float, *, limit: float = 1.0, detail: str = ""):
        self.total = total
        self.limit = limit
        msg = f"Total man-days ({total:.2f}) exceeds {limit:.1f} for a single day"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class LeaveConflict(CapacityExceeded):
    """Leave shares a day with other records."""

    def __init__(self, detail: str = ""):
        super().__init__(1.0, detail=detail or "leave is exclusive with other allocations")


class InvalidWeight(GridError, ValueError):
    """A single man-day weight lies outside (0, 1.0]."""

    def __init__(self, item: str, weight: float):
        self.item = item
        self.weight = weight
        super().__init__(f"Man Days for {item} must be greater than 0 and at most 1.0 (got {weight:g})")


class UnknownWorkItems(GridError):
    def __init__(self, names: list[str]):
        self.names = list(names)
        super().__init__(
            "The following shot(s) are not in the award sheet: "
            + ", ".join(self.names)
            + ". Add them to the award sheet first, then retry the allocation."
        )


class OperationCancelled(GridError):
    """The human confirmation step was declined."""


class BackendError(GridError):
    """A collaborator call was rejected."""

    def __init__(self, message: str, *, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class FailedWrite:
    operation: str
    target: str
    error: BaseException


class WriteFailure(GridError):
    """Some writes of one logical operation failed; the rest stay applied."""

    def __init__(self, failures: list[FailedWrite]):
        self.failures = list(failures)
        lines = [f"{f.operation} {f.target}: {f.error}" for f in self.failures]
        super().__init__(f"{len(self.failures)} write(s) failed: " + "; ".join(lines))
