"""Runtime task state and execution records

Kept in memory only; a restart starts from a clean slate, like the schedule
itself (missed ticks are not replayed).
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class TaskStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class RunTrigger(str, Enum):
    """What started a task run"""

    START = "start"  # scheduler start-up (run_on_start)
    SCHEDULE = "schedule"  # interval tick
    MANUAL = "manual"  # admin API


def _jsonable(values: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        out[key] = value
    return out


@dataclass
class TaskState:
    """Latest known state of one task

    Attributes:
        status: idle or running
        next_run_at: next interval tick
        last_run_at: start of the most recent run
        last_result: success / failed / skipped
        last_error: error text of the most recent failed run
        run_count: finished runs, skipped ones included
        fail_count: failed runs
    """

    task_name: str
    status: TaskStatus = TaskStatus.IDLE
    next_run_at: datetime | None = None
    last_run_at: datetime | None = None
    last_result: str | None = None
    last_error: str | None = None
    run_count: int = 0
    fail_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return _jsonable(asdict(self))


@dataclass
class TaskExecutionRecord:
    """One attempted run of a task"""

    id: str
    task_name: str
    started_at: datetime
    trigger: RunTrigger = RunTrigger.SCHEDULE
    finished_at: datetime | None = None
    duration_ms: int | None = None
    status: str = "running"
    message: str = ""
    error: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def finish(self, status: str, message: str, error: str | None = None, data: dict[str, Any] | None = None) -> None:
        self.finished_at = datetime.now()
        self.duration_ms = int((self.finished_at - self.started_at).total_seconds() * 1000)
        self.status = status
        self.message = message
        self.error = error
        self.data = data or {}

    def to_dict(self) -> dict[str, Any]:
        return _jsonable(asdict(self))
