"""
Job data models.

A JobRequest asks for one workflow to be run against one file. Requests are
immutable and compared structurally, which is what queue deduplication
relies on.

RunnableJob and RunningJob mark where a request is in its lifecycle:
QUEUED -> RUNNING -> SUCCEEDED | FAILED. Finished jobs are not kept; their
JobOutcome is logged and handed to the completion hook.
"""

from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..execution.results import WorkflowReport
from ..workflows.models import Workflow


class JobState(str, Enum):
    """
    Job lifecycle state.
    """

    QUEUED = "queued"  # Waiting in the orchestrator queue
    RUNNING = "running"  # Workflow runner is executing
    SUCCEEDED = "succeeded"  # Workflow committed its result
    FAILED = "failed"  # Runner returned an error, source untouched


class OrchestratorState(str, Enum):
    """State of the orchestrator's single execution slot."""

    IDLE = "idle"
    BUSY = "busy"


class InFlightPolicy(str, Enum):
    """
    What to do with a request equal to the job that is currently running.

    QUEUE: queue it, the file gets a follow-up pass after the current run
    DROP: discard it
    """

    QUEUE = "queue"
    DROP = "drop"


class JobRequest(BaseModel):
    """
    Request to run a workflow against a file of a library.

    Created by library monitors, one per matched file per scan.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    library: str
    file_path: Path  # Absolute path to the file
    workflow: Workflow


@dataclass
class RunnableJob:
    """A request that was accepted into the queue."""

    request: JobRequest
    enqueued_at: datetime = field(default_factory=datetime.now)
    state: JobState = JobState.QUEUED


@dataclass
class RunningJob:
    """The request currently being executed by the worker."""

    request: JobRequest
    future: Future
    started_at: datetime = field(default_factory=datetime.now)
    state: JobState = JobState.RUNNING


@dataclass
class JobOutcome:
    """
    Result of a finished job.

    report is set when the job SUCCEEDED, error when it FAILED.
    """

    request: JobRequest
    state: JobState
    started_at: datetime
    finished_at: datetime
    report: Optional[WorkflowReport] = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.state == JobState.SUCCEEDED

    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    def summary(self) -> str:
        """Human-readable summary of the outcome."""
        duration = f" ({self.duration_seconds():.1f}s)"
        if self.succeeded and self.report is not None:
            return f"SUCCEEDED{duration}: {self.report.summary()}"
        return f"FAILED{duration}: {self.request.file_path} - {self.error}"
