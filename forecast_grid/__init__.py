"""Resource forecast grid engine: cells of fractional man-day allocations."""

from .aggregate import aggregate, cell_status, is_weekend, is_working_day
from .backend import AllocationBackend, InMemoryBackend
from .capacity import UnknownItemDecision, abort_on_unknown, check_capacity, keep_valid_items
from .codec import decode, encode
from .errors import (
    BackendError,
    CapacityExceeded,
    GridError,
    InvalidWeight,
    LeaveConflict,
    OperationCancelled,
    UnknownWorkItems,
    WriteFailure,
)
from .models import (
    Assignment,
    CellKey,
    CellStatus,
    DailyCell,
    Idle,
    Leave,
    Person,
    SavedView,
    Work,
    WorkItemCheck,
)
from .session import GridSession, MemoryStore
from .sync import ALLOCATION_UPDATED, ChangeBus
from .views import FilterState, utilization_bucket

__all__ = [
    "ALLOCATION_UPDATED",
    "AllocationBackend",
    "Assignment",
    "BackendError",
    "CapacityExceeded",
    "CellKey",
    "CellStatus",
    "ChangeBus",
    "DailyCell",
    "FilterState",
    "GridError",
    "GridSession",
    "Idle",
    "InMemoryBackend",
    "InvalidWeight",
    "Leave",
    "LeaveConflict",
    "MemoryStore",
    "OperationCancelled",
    "Person",
    "SavedView",
    "UnknownItemDecision",
    "UnknownWorkItems",
    "Work",
    "WorkItemCheck",
    "WriteFailure",
    "abort_on_unknown",
    "aggregate",
    "cell_status",
    "check_capacity",
    "decode",
    "encode",
    "is_weekend",
    "is_working_day",
    "keep_valid_items",
    "utilization_bucket",
]
