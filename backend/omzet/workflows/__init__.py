"""
Workflow definitions.

A workflow is an ordered list of tasks plus the scratchpad directory and the
file extensions it applies to. Workflows are loaded once from configuration
and shared read-only between jobs.
"""

from .models import (
    BuiltinKind,
    BuiltinTask,
    CustomTask,
    Task,
    Workflow,
    BUILTIN_TASK_PREFIX,
)

__all__ = [
    "BuiltinKind",
    "BuiltinTask",
    "CustomTask",
    "Task",
    "Workflow",
    "BUILTIN_TASK_PREFIX",
]
