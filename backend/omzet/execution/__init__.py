"""
Workflow execution pipeline.

Stages a source file into a scratchpad, probes and runs tasks as child
processes, and commits the result back over the source.
"""

from .errors import (
    RunnerError,
    PreparationFailed,
    ProbeAborted,
    CompletionFailed,
    ScriptExecutionError,
)
from .results import (
    ProbeResult,
    TaskReport,
    WorkflowReport,
)
from .context import ExecutionContext, ProbingContext, TaskContext
from .tasks import probe_task, run_task
from .runner import WorkflowRunner, run_workflow

__all__ = [
    # Errors
    "RunnerError",
    "PreparationFailed",
    "ProbeAborted",
    "CompletionFailed",
    "ScriptExecutionError",
    # Results
    "ProbeResult",
    "TaskReport",
    "WorkflowReport",
    # Contexts
    "ExecutionContext",
    "ProbingContext",
    "TaskContext",
    # Dispatch
    "probe_task",
    "run_task",
    # Runner
    "WorkflowRunner",
    "run_workflow",
]
