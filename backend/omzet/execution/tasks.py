"""
Task dispatch.

The runner never needs to know which kind of task it is handling: it calls
probe_task and run_task, which dispatch on the task's tag.
"""

from ..workflows.models import BuiltinTask, CustomTask, Task
from .builtin import probe_builtin_task, run_builtin_task
from .context import ProbingContext, TaskContext
from .custom import probe_custom_task, run_custom_task
from .process import DEFAULT_SHELL
from .results import ProbeResult, TaskReport


def probe_task(task: Task, context: ProbingContext, shell: str = DEFAULT_SHELL) -> ProbeResult:
    """Evaluate a task's probe against the staged file."""
    if isinstance(task, CustomTask):
        return probe_custom_task(task, context, shell=shell)
    if isinstance(task, BuiltinTask):
        return probe_builtin_task(task, context)
    raise TypeError(f"Unknown task type: {type(task).__name__}")


def run_task(task: Task, context: TaskContext, shell: str = DEFAULT_SHELL) -> TaskReport:
    """Execute a task and report its outcome."""
    if isinstance(task, CustomTask):
        return run_custom_task(task, context, shell=shell)
    if isinstance(task, BuiltinTask):
        return run_builtin_task(task, context)
    raise TypeError(f"Unknown task type: {type(task).__name__}")
