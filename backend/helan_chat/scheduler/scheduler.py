"""Scheduler core

Lightweight scheduler on top of APScheduler: every registered task gets one
interval job. Ticks missed while the process was down are not replayed.
"""

import asyncio
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from helan_chat.core.logging import get_logger
from helan_chat.scheduler.registry import TaskRegistry, task_registry
from helan_chat.scheduler.runner import TaskRunner
from helan_chat.scheduler.state.models import RunTrigger
from helan_chat.scheduler.tasks.base import BaseTask

logger = get_logger("scheduler.core")


class TaskScheduler:
    """Task scheduler

    Example:
        scheduler = TaskScheduler(task_registry)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        registry: TaskRegistry | None = None,
        runner: TaskRunner | None = None,
    ):
        self.registry = registry if registry is not None else task_registry
        self.runner = runner if runner is not None else TaskRunner()
        self._scheduler = AsyncIOScheduler()
        self._running = False
        self._job_ids: dict[str, str] = {}
        self._background: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start APScheduler, add one job per task and fire run_on_start tasks"""
        if self._running:
            logger.warning("Scheduler already running")
            return

        self._scheduler.start()
        self._running = True
        logger.info("Task scheduler started")

        for task in self.registry:
            self._add_task_job(task)

        for task in self.registry.enabled():
            if task.schedule.run_on_start:
                logger.info("Running task on start", task_name=task.name)
                self._spawn(self._execute_task(task.name, RunTrigger.START))

    async def stop(self) -> None:
        if not self._running:
            return
        self._scheduler.shutdown(wait=False)
        self._running = False
        self._job_ids.clear()
        logger.info("Task scheduler stopped")

    def _spawn(self, coro) -> asyncio.Task:
        background = asyncio.create_task(coro)
        self._background.add(background)
        background.add_done_callback(self._background.discard)
        return background

    def _add_task_job(self, task: BaseTask) -> None:
        try:
            job = self._scheduler.add_job(
                self._execute_task,
                trigger=IntervalTrigger(seconds=task.schedule.interval_seconds),
                args=[task.name],
                id=f"task_{task.name}",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        except Exception as e:
            logger.error("Scheduling task failed", task_name=task.name, error=str(e))
            return

        self._job_ids[task.name] = job.id
        next_run = self.get_next_run(task.name)
        if next_run:
            self.runner.update_next_run(task.name, next_run)
        logger.info(
            "Task scheduled",
            task_name=task.name,
            interval_seconds=task.schedule.interval_seconds,
            next_run=next_run,
        )

    async def _execute_task(self, task_name: str, trigger: RunTrigger = RunTrigger.SCHEDULE) -> None:
        task = self.registry.get(task_name)
        if not task:
            logger.warning("Unknown task", task_name=task_name)
            return
        if not task.enabled:
            logger.debug("Task disabled, skipped", task_name=task_name)
            return

        await self.runner.execute(task, trigger=trigger)

        next_run = self.get_next_run(task_name)
        if next_run:
            self.runner.update_next_run(task_name, next_run)

    async def trigger(self, task_name: str) -> bool:
        """Run a task in the background right away

        Returns:
            False when the task is unknown
        """
        task = self.registry.get(task_name)
        if not task:
            logger.warning("Unknown task", task_name=task_name)
            return False

        self.run_in_background(task)
        return True

    def run_in_background(self, task: BaseTask) -> asyncio.Task:
        """Execute a task instance through the runner without waiting for it"""
        logger.info("Task triggered manually", task_name=task.name)
        return self._spawn(self.runner.execute(task, trigger=RunTrigger.MANUAL))

    def get_next_run(self, task_name: str) -> datetime | None:
        job_id = self._job_ids.get(task_name)
        if job_id:
            job = self._scheduler.get_job(job_id)
            if job and job.next_run_time:
                return job.next_run_time.replace(tzinfo=None)
        return None

    def get_status(self) -> dict:
        tasks = []
        for task in self.registry:
            state = self.runner.get_state(task.name)
            tasks.append(
                {
                    "name": task.name,
                    "description": task.description,
                    "enabled": task.enabled,
                    "interval_seconds": task.schedule.interval_seconds,
                    **state.to_dict(),
                }
            )
        return {
            "running": self._running,
            "task_count": len(self._job_ids),
            "tasks": tasks,
            "recent_runs": [record.to_dict() for record in self.runner.get_history(limit=5)],
        }


task_scheduler = TaskScheduler()
