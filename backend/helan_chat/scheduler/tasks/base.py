"""Task interface"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_TASK_TIMEOUT = 6 * 3600


@dataclass
class TaskSchedule:
    """Schedule of a task

    Attributes:
        interval_seconds: seconds between runs
        allow_concurrent: whether a run may start while the previous one is active
        run_on_start: run once as soon as the scheduler starts
        timeout: seconds before a run is cancelled and marked failed;
            None lets the run finish however long it takes
    """

    interval_seconds: int
    allow_concurrent: bool = False
    run_on_start: bool = False
    timeout: float | None = DEFAULT_TASK_TIMEOUT

    def __post_init__(self):
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive or None")


class TaskResultStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class TaskResult:
    """Outcome of one task run

    Attributes:
        status: outcome
        message: human readable summary
        data: extra figures (pages stored, services created, ...)
        error: error text for failed runs
    """

    status: TaskResultStatus
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @classmethod
    def success(cls, message: str = "Completed", **data) -> "TaskResult":
        return cls(status=TaskResultStatus.SUCCESS, message=message, data=data)

    @classmethod
    def failed(cls, error: str, message: str = "Failed") -> "TaskResult":
        return cls(status=TaskResultStatus.FAILED, message=message, error=error)

    @classmethod
    def skipped(cls, message: str = "Skipped") -> "TaskResult":
        return cls(status=TaskResultStatus.SKIPPED, message=message)


class BaseTask(ABC):
    """Base class of scheduled tasks

    Example:
        class PingTask(BaseTask):
            name = "ping"
            description = "Ping the origin"
            schedule = TaskSchedule(interval_seconds=3600)

            async def run(self) -> TaskResult:
                return TaskResult.success("pong")
    """

    name: str
    description: str
    schedule: TaskSchedule
    enabled: bool = True

    @abstractmethod
    async def run(self) -> TaskResult:
        """Execute the task once"""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name}>"
