"""
Workflow runner errors.

Every runner failure is typed and returned to the orchestrator; none of them
stop the daemon. In all three cases the source file is left untouched.
"""

from pathlib import Path
from typing import Optional


class RunnerError(Exception):
    """Base exception for a workflow run that could not complete."""

    pass


class PreparationFailed(RunnerError):
    """
    Scratchpad preparation failed.

    Raised when:
    - The scratchpad directory cannot be created
    - The source file cannot be copied into the scratchpad
    """

    SCRATCHPAD = "scratchpad"
    COPY = "copy"

    def __init__(self, reason: str, path: Path, cause: Optional[BaseException] = None):
        self.reason = reason
        self.path = path
        self.cause = cause
        if reason == self.SCRATCHPAD:
            message = f"Unable to create scratchpad directory {path}"
        else:
            message = f"Unable to copy source file into scratchpad at {path}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class ProbeAborted(RunnerError):
    """A task probe could not be executed; no task has run."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Probe of task '{task_id}' was aborted")


class CompletionFailed(RunnerError):
    """
    The transformed file could not be moved over the source file.

    The source file is unchanged. The transformed file is stranded in the
    scratchpad at staged_path and needs operator attention.
    """

    def __init__(self, staged_path: Path, source_path: Path, cause: Optional[BaseException] = None):
        self.staged_path = staged_path
        self.source_path = source_path
        self.cause = cause
        message = f"Unable to move transformed file {staged_path} to source path {source_path}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class ScriptExecutionError(Exception):
    """
    A probe or task script could not be run to completion.

    Raised when the shell cannot be spawned, cannot be waited on, or the
    script is terminated by a signal. Callers convert this into a probe
    ABORT or a TaskReport without exit code.
    """

    def __init__(self, reason: str, cause: Optional[BaseException] = None):
        self.reason = reason
        self.cause = cause
        message = reason
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
