"""Task runner

Executes a task within the timeout of its schedule, catches whatever it
raises and keeps the per-task state and a bounded execution history.
"""

import asyncio
import uuid
from collections import deque
from datetime import datetime

from helan_chat.core.logging import get_logger
from helan_chat.scheduler.state.models import RunTrigger, TaskExecutionRecord, TaskState, TaskStatus
from helan_chat.scheduler.tasks.base import BaseTask, TaskResultStatus

logger = get_logger("scheduler.runner")


class TaskRunner:
    """Task executor"""

    def __init__(self, history_size: int = 100):
        self._task_states: dict[str, TaskState] = {}
        self._execution_history: deque[TaskExecutionRecord] = deque(maxlen=history_size)
        self._running_tasks: set[str] = set()

    def get_state(self, task_name: str) -> TaskState:
        if task_name not in self._task_states:
            self._task_states[task_name] = TaskState(task_name=task_name)
        return self._task_states[task_name]

    def update_next_run(self, task_name: str, next_run_at: datetime) -> None:
        self.get_state(task_name).next_run_at = next_run_at

    def is_running(self, task_name: str) -> bool:
        return task_name in self._running_tasks

    async def execute(
        self,
        task: BaseTask,
        timeout: float | None = None,
        trigger: RunTrigger = RunTrigger.SCHEDULE,
    ) -> TaskExecutionRecord:
        """Run a task once

        Args:
            task: task to run
            timeout: overrides the task's schedule timeout
            trigger: what started the run

        Returns:
            Execution record; overlapping runs of a non-concurrent task are
            recorded as skipped without running.
        """
        task_name = task.name
        state = self.get_state(task_name)
        if timeout is None:
            timeout = task.schedule.timeout
        record = TaskExecutionRecord(
            id=str(uuid.uuid4()), task_name=task_name, started_at=datetime.now(), trigger=trigger
        )

        if not task.schedule.allow_concurrent and self.is_running(task_name):
            logger.warning("Task already running, skipped", task_name=task_name)
            record.finish(TaskResultStatus.SKIPPED.value, "Task already running")
            self._execution_history.append(record)
            return record

        state.status = TaskStatus.RUNNING
        self._running_tasks.add(task_name)
        logger.info("Task started", task_name=task_name, record_id=record.id, trigger=trigger.value)

        try:
            if timeout is None:
                result = await task.run()
            else:
                result = await asyncio.wait_for(task.run(), timeout=timeout)
            record.finish(result.status.value, result.message, result.error, result.data)
            logger.info(
                "Task finished",
                task_name=task_name,
                status=result.status.value,
                duration_ms=record.duration_ms,
                data=result.data,
            )
        except asyncio.TimeoutError:
            record.finish(TaskResultStatus.FAILED.value, "Timed out", f"Task exceeded {timeout} seconds")
            logger.error("Task timed out", task_name=task_name, timeout=timeout)
        except Exception as e:
            record.finish(TaskResultStatus.FAILED.value, "Raised an exception", str(e))
            logger.exception("Task raised", task_name=task_name, error=str(e))
        finally:
            state.status = TaskStatus.IDLE
            self._running_tasks.discard(task_name)
            self._execution_history.append(record)

        state.last_run_at = record.started_at
        state.last_result = record.status
        state.last_error = record.error
        state.run_count += 1
        if record.status == TaskResultStatus.FAILED.value:
            state.fail_count += 1
        return record

    def get_history(self, task_name: str | None = None, limit: int = 10) -> list[TaskExecutionRecord]:
        """Execution records, newest first"""
        records = [r for r in self._execution_history if task_name is None or r.task_name == task_name]
        return sorted(records, key=lambda r: r.started_at, reverse=True)[:limit]

    def get_all_states(self) -> list[TaskState]:
        return list(self._task_states.values())
