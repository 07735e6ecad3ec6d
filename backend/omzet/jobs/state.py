"""
State transition validation for jobs.

Job lifecycle: QUEUED -> RUNNING -> SUCCEEDED | FAILED
No retry, no requeue: a failed file is picked up again by the next library
scan as a brand new request.
"""

from typing import FrozenSet, Set, Tuple

from .errors import InvalidStateTransitionError
from .models import JobState


TERMINAL_JOB_STATES: FrozenSet[JobState] = frozenset({
    JobState.SUCCEEDED,
    JobState.FAILED,
})


_JOB_TRANSITIONS: Set[Tuple[JobState, JobState]] = {
    (JobState.QUEUED, JobState.RUNNING),
    (JobState.RUNNING, JobState.SUCCEEDED),
    (JobState.RUNNING, JobState.FAILED),
}


def is_job_terminal(status: JobState) -> bool:
    """Check if a job state is terminal (immutable)."""
    return status in TERMINAL_JOB_STATES


def can_transition_job(from_state: JobState, to_state: JobState) -> bool:
    """
    Check if a job state transition is legal.

    Terminal states cannot transition to any other state.
    """
    if from_state == to_state:
        return True

    if is_job_terminal(from_state):
        return False

    return (from_state, to_state) in _JOB_TRANSITIONS


def validate_job_transition(from_state: JobState, to_state: JobState) -> None:
    """
    Validate a job state transition, raising an exception if illegal.

    Raises:
        InvalidStateTransitionError: If the transition is not allowed
    """
    if not can_transition_job(from_state, to_state):
        raise InvalidStateTransitionError("job", from_state.value, to_state.value)
