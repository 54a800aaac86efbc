"""Task registry"""

from collections.abc import Iterable, Iterator

from helan_chat.core.logging import get_logger
from helan_chat.scheduler.tasks.base import BaseTask

logger = get_logger("scheduler.registry")


class TaskRegistry:
    """Scheduled tasks by name, in registration order"""

    def __init__(self, tasks: Iterable[BaseTask] = ()):
        self._by_name: dict[str, BaseTask] = {}
        for task in tasks:
            self.register(task)

    def register(self, task: BaseTask, *, replace: bool = False) -> BaseTask:
        """Add a task

        Raises:
            ValueError: the name is taken and replace is False
        """
        previous = self._by_name.get(task.name)
        if previous is not None and not replace:
            raise ValueError(f"Task already registered: {task.name}")
        self._by_name[task.name] = task
        logger.info(
            "Task registered",
            task_name=task.name,
            interval_seconds=task.schedule.interval_seconds,
            replaced=previous is not None,
        )
        return task

    def unregister(self, task_name: str) -> BaseTask | None:
        task = self._by_name.pop(task_name, None)
        if task is not None:
            logger.info("Task unregistered", task_name=task_name)
        return task

    def get(self, task_name: str) -> BaseTask | None:
        return self._by_name.get(task_name)

    def enabled(self) -> list[BaseTask]:
        return [task for task in self if task.enabled]

    def __iter__(self) -> Iterator[BaseTask]:
        return iter(list(self._by_name.values()))

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, task_name: object) -> bool:
        return task_name in self._by_name


task_registry = TaskRegistry()
