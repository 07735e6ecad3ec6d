"""
Probe and execution result models.

TaskReport captures one executed task; WorkflowReport aggregates the reports
of one workflow run and is the contract handed back to the orchestrator.
"""

from enum import Enum
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..workflows.models import Workflow


class ProbeResult(str, Enum):
    """
    Outcome of probing a task.

    RUN: the task should execute
    SKIP: the task is not needed for this file
    ABORT: the probe itself failed, the whole workflow must stop
    """

    RUN = "run"
    SKIP = "skip"
    ABORT = "abort"


class TaskReport(BaseModel):
    """
    Result of executing a single task.

    Produced for every task that ran, whatever its exit code.
    exit_code is None when the process could not be started or waited on,
    or when it was terminated by a signal.
    """

    model_config = ConfigDict(extra="forbid")

    task_id: str
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""

    output_produced: bool = False
    """Whether the task wrote its expected output file."""

    warnings: List[str] = Field(default_factory=list)
    """Non-blocking issues, e.g. the task produced no output file."""

    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()


class WorkflowReport(BaseModel):
    """
    Result of one successful workflow run.

    task_reports holds one entry per executed task, in execution order.
    Skipped tasks have no entry.
    """

    model_config = ConfigDict(extra="forbid")

    workflow: Workflow
    source_file_path: Path
    task_reports: List[TaskReport] = Field(default_factory=list)

    def register_report(self, report: TaskReport) -> None:
        self.task_reports.append(report)

    @property
    def succeeded_tasks(self) -> List[TaskReport]:
        return [report for report in self.task_reports if report.succeeded]

    @property
    def failed_tasks(self) -> List[TaskReport]:
        return [report for report in self.task_reports if not report.succeeded]

    def summary(self) -> str:
        """Human-readable one-line summary for logs."""
        if not self.task_reports:
            return f"{self.workflow.name}: no tasks ran for {self.source_file_path}"
        return (
            f"{self.workflow.name}: {len(self.task_reports)} task(s) ran for "
            f"{self.source_file_path} ({len(self.failed_tasks)} failed)"
        )
