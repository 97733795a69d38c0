"""
Task Registry
-------------

Every asyncio task the runtime spawns (atlas load cycles, playback
schedules) goes through create_tracked_task(), so a crashed task is logged
instead of vanishing and callers can see or cancel what is still running.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Coroutine, Dict, List, Optional

from sprite_animation.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.TASK)


class TaskCategory(Enum):
    LOADER = auto()
    PLAYBACK = auto()
    GENERAL = auto()


class TaskState(Enum):
    RUNNING = auto()
    DONE = auto()
    FAILED = auto()
    CANCELLED = auto()


@dataclass
class TrackedTask:
    id: int
    task: asyncio.Task
    category: TaskCategory
    description: str
    started_at: float = field(default_factory=time.monotonic)
    finished_at: Optional[float] = None
    error: Optional[BaseException] = None
    result: Any = None

    @property
    def state(self) -> TaskState:
        if not self.task.done():
            return TaskState.RUNNING
        if self.task.cancelled():
            return TaskState.CANCELLED
        return TaskState.FAILED if self.error is not None else TaskState.DONE

    @property
    def duration_s(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return self.finished_at - self.started_at


class TaskRegistry:
    """
    Process-wide record of tracked tasks.

    Only the newest `history_limit` finished tasks are kept; running tasks
    are never dropped.
    """

    _instance: Optional["TaskRegistry"] = None

    def __init__(self, history_limit: int = 256) -> None:
        self._tasks: Dict[int, TrackedTask] = {}
        self._ids = 0
        self._history_limit = history_limit

    @classmethod
    def instance(cls) -> "TaskRegistry":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def track(self, task: asyncio.Task, category: TaskCategory, description: str) -> TrackedTask:
        self._ids += 1
        tracked = TrackedTask(id=self._ids, task=task, category=category, description=description)
        self._tasks[tracked.id] = tracked
        self._prune()

        log.debug("Task started", task=tracked.id, kind=category.name, description=description)
        task.add_done_callback(lambda _, t=tracked: self._finished(t))
        return tracked

    def _finished(self, tracked: TrackedTask) -> None:
        tracked.finished_at = time.monotonic()
        if tracked.task.cancelled():
            log.debug("Task cancelled", task=tracked.id, description=tracked.description)
            return

        error = tracked.task.exception()
        if error is not None:
            tracked.error = error
            log.error("Task crashed", task=tracked.id, description=tracked.description, exception=error)
        else:
            tracked.result = tracked.task.result()

    def _prune(self) -> None:
        finished = [t.id for t in self._tasks.values() if t.task.done()]
        for task_id in finished[:max(0, len(self._tasks) - self._history_limit)]:
            del self._tasks[task_id]

    # -----------------------------
    # Queries
    # -----------------------------

    def all(self) -> List[TrackedTask]:
        return list(self._tasks.values())

    def in_state(self, state: TaskState, category: Optional[TaskCategory] = None) -> List[TrackedTask]:
        return [
            t for t in self._tasks.values()
            if t.state is state and (category is None or t.category is category)
        ]

    def active(self, category: Optional[TaskCategory] = None) -> List[TrackedTask]:
        return self.in_state(TaskState.RUNNING, category)

    def failed(self) -> List[TrackedTask]:
        return self.in_state(TaskState.FAILED)

    def cancelled(self) -> List[TrackedTask]:
        return self.in_state(TaskState.CANCELLED)

    def cancel_all(self, category: Optional[TaskCategory] = None) -> int:
        """Cancel running tasks (of one category); returns how many"""
        running = self.active(category)
        for tracked in running:
            tracked.task.cancel()
        if running:
            log.info("Cancelling tasks", count=len(running), kind=category.name if category else "ALL")
        return len(running)

    def summary(self) -> str:
        counts = {state: len(self.in_state(state)) for state in TaskState}
        return ", ".join(f"{state.name.lower()}={n}" for state, n in counts.items())


def create_tracked_task(
    coro: Coroutine,
    *,
    category: TaskCategory,
    description: str
) -> asyncio.Task:
    """Schedule coro on the running loop and track it."""
    task = asyncio.get_running_loop().create_task(coro)
    TaskRegistry.instance().track(task, category, description)
    return task
