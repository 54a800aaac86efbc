"""Task scheduling

- TaskScheduler: APScheduler-backed scheduler, one interval job per task
- TaskRegistry: registered tasks
- TaskRunner: executes tasks with timeout, overlap guard and history
- BaseTask: task interface

Usage:
    from helan_chat.scheduler import task_registry, task_scheduler
    from helan_chat.scheduler.tasks import ScrapeWebsitesTask

    task_registry.register(ScrapeWebsitesTask())
    await task_scheduler.start()
"""

from helan_chat.scheduler.registry import TaskRegistry, task_registry
from helan_chat.scheduler.runner import TaskRunner
from helan_chat.scheduler.scheduler import TaskScheduler, task_scheduler

__all__ = [
    "TaskRegistry",
    "TaskRunner",
    "TaskScheduler",
    "task_registry",
    "task_scheduler",
]
