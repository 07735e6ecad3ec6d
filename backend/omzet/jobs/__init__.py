"""
Job orchestration: queueing, deduplication and serialized execution.

Library monitors submit JobRequests through a JobSender. The orchestrator
queues them (FIFO, deduplicated) and runs at most one workflow at a time.
"""

from .errors import (
    JobError,
    ChannelClosedError,
    InvalidStateTransitionError,
)
from .models import (
    JobState,
    OrchestratorState,
    InFlightPolicy,
    JobRequest,
    RunnableJob,
    RunningJob,
    JobOutcome,
)
from .state import can_transition_job, validate_job_transition
from .channel import JobChannel, JobSender
from .orchestrator import JobOrchestrator, DEFAULT_POLL_INTERVAL

__all__ = [
    # Errors
    "JobError",
    "ChannelClosedError",
    "InvalidStateTransitionError",
    # Models
    "JobState",
    "OrchestratorState",
    "InFlightPolicy",
    "JobRequest",
    "RunnableJob",
    "RunningJob",
    "JobOutcome",
    # State validation
    "can_transition_job",
    "validate_job_transition",
    # Channel
    "JobChannel",
    "JobSender",
    # Orchestrator
    "JobOrchestrator",
    "DEFAULT_POLL_INTERVAL",
]
