"""
Per-run execution contexts.

ExecutionContext is owned by the runner for the duration of one run.
ProbingContext and TaskContext are the read-only views handed to tasks.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ExecutionContext:
    scratchpad_directory: Path
    """Directory where tasks are executed."""

    source_file_path: Path
    """Original file; only touched by the final commit."""

    input_file: Path
    """Staged file every task reads; replaced by each task's output."""

    output_file: Path
    """Path every task is expected to write."""

    def probing_context(self) -> "ProbingContext":
        return ProbingContext(path=self.input_file, directory=self.scratchpad_directory)

    def task_context(self) -> "TaskContext":
        return TaskContext(
            input_path=self.input_file,
            output_path=self.output_file,
            directory=self.scratchpad_directory,
        )


@dataclass(frozen=True)
class ProbingContext:
    path: Path
    directory: Path


@dataclass(frozen=True)
class TaskContext:
    input_path: Path
    output_path: Path
    directory: Path
