"""
Lifecycle helpers: tracking of the asyncio tasks the runtime spawns
"""

from .task_registry import TaskCategory, TaskState, TrackedTask, TaskRegistry, create_tracked_task

__all__ = [
    "TaskCategory",
    "TaskState",
    "TrackedTask",
    "TaskRegistry",
    "create_tracked_task",
]
