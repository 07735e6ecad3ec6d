"""
Job orchestrator: one FIFO queue, one execution slot.

Design rules:
- FIFO order, no prioritization
- At most one workflow runs at a time, on a dedicated worker thread
- Requests equal to one already queued are discarded
- Polling control loop: every tick drains the channel, then advances the
  IDLE/BUSY state machine by one step
- A failing job is logged and never stops the loop

The orchestrator thread is the only one touching the queue and the running
slot. The worker reports back through its Future, never through shared
state.
"""

import logging
import threading
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Deque, List, Optional, Tuple

from ..execution.errors import RunnerError
from ..execution.runner import WorkflowRunner
from .channel import JobChannel, JobSender
from .models import (
    InFlightPolicy,
    JobOutcome,
    JobRequest,
    JobState,
    OrchestratorState,
    RunnableJob,
    RunningJob,
)
from .state import validate_job_transition

logger = logging.getLogger(__name__)


DEFAULT_POLL_INTERVAL = 5.0

CompletionCheck = Callable[[JobRequest], bool]
CompletionHook = Callable[[JobOutcome], None]


class JobOrchestrator:
    """
    Serializes and deduplicates file-processing jobs.

    Example:
        >>> orchestrator, sender = JobOrchestrator.create()
        >>> sender.send(JobRequest(library="movies", file_path=path, workflow=workflow))
        >>> orchestrator.start()  # runs until the channel is closed and drained
    """

    def __init__(
        self,
        channel: JobChannel,
        runner: Optional[WorkflowRunner] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        in_flight_policy: InFlightPolicy = InFlightPolicy.QUEUE,
        completion_check: Optional[CompletionCheck] = None,
        on_complete: Optional[CompletionHook] = None,
    ):
        """
        Args:
            channel: Channel the orchestrator drains job requests from
            runner: Workflow runner used by the worker
            poll_interval: Seconds between control loop ticks
            in_flight_policy: Handling of requests equal to the running job
            completion_check: Returns True for requests whose file was
                already processed; those are discarded on arrival and
                again before they start
            on_complete: Called on the orchestrator thread with every
                finished job's outcome
        """
        self._channel = channel
        self._runner = runner or WorkflowRunner()
        self.poll_interval = poll_interval
        self.in_flight_policy = in_flight_policy
        self._completion_check = completion_check
        self._on_complete = on_complete

        self._queue: Deque[RunnableJob] = deque()
        self._running: Optional[RunningJob] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._stop_event = threading.Event()

    @classmethod
    def create(cls, **kwargs) -> Tuple["JobOrchestrator", JobSender]:
        """Create an orchestrator and the sender producers use to reach it."""
        channel = JobChannel()
        return cls(channel, **kwargs), channel.sender()

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def state(self) -> OrchestratorState:
        if self._running is None:
            return OrchestratorState.IDLE
        return OrchestratorState.BUSY

    @property
    def is_busy(self) -> bool:
        return self.state == OrchestratorState.BUSY

    @property
    def is_finished(self) -> bool:
        """True once the channel is closed and all accepted work is done."""
        return self._channel.closed and not self._queue and self._running is None

    def queued_requests(self) -> List[JobRequest]:
        """Queued requests in FIFO order."""
        return [job.request for job in self._queue]

    def current_request(self) -> Optional[JobRequest]:
        if self._running is None:
            return None
        return self._running.request

    # =========================================================================
    # Control loop
    # =========================================================================

    def start(self) -> None:
        """
        Run the control loop.

        Returns after the job channel has been closed and every queued and
        running job has finished, or after stop() once the running job has
        finished.
        """
        logger.info(f"[Orchestrator] Started (poll interval {self.poll_interval}s)")
        try:
            while True:
                self.tick()
                if self._can_exit():
                    break
                if self.stopping:
                    # Waiting on the running job, stop_event no longer blocks
                    time.sleep(self.poll_interval)
                else:
                    self._stop_event.wait(self.poll_interval)
        finally:
            self.shutdown()
        logger.info("[Orchestrator] Stopped")

    def tick(self) -> None:
        """One iteration of the control loop."""
        logger.debug("[Orchestrator] Tick")
        self.handle_incoming_job_requests()
        if self.stopping:
            self._discard_queued()
        self.handle_runner()

    def stop(self) -> None:
        """
        Ask the control loop to exit.

        The running job is not cancelled; queued jobs are discarded. Safe to
        call from any thread.
        """
        self._stop_event.set()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def shutdown(self) -> None:
        """Release the worker thread. Waits for a running job to finish."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _can_exit(self) -> bool:
        if self.stopping:
            return self._running is None
        if not self.is_finished:
            return False
        # Pick up anything sent between the last drain and close()
        self.handle_incoming_job_requests()
        return self.is_finished

    def _discard_queued(self) -> None:
        if self._queue:
            logger.info(f"[Orchestrator] Stopping, discarding {len(self._queue)} queued job(s)")
            self._queue.clear()

    # =========================================================================
    # Inbound requests
    # =========================================================================

    def handle_incoming_job_requests(self) -> None:
        """Drain the channel and enqueue every request that is needed."""
        for request in self._channel.drain():
            self.enqueue(request)

    def enqueue(self, request: JobRequest) -> bool:
        """
        Add a request to the back of the queue unless it is redundant.

        Returns:
            True if the request was queued
        """
        if any(job.request == request for job in self._queue):
            logger.debug(f"[Orchestrator] Already queued: {request.file_path}")
            return False

        if self._running is not None and self._running.request == request:
            if self.in_flight_policy == InFlightPolicy.DROP:
                logger.debug(f"[Orchestrator] Already running, dropped: {request.file_path}")
                return False
            logger.debug(f"[Orchestrator] Already running, queued for follow-up: {request.file_path}")

        if self._is_already_completed(request):
            logger.debug(f"[Orchestrator] Already processed: {request.file_path}")
            return False

        self._queue.append(RunnableJob(request=request))
        logger.info(
            f"[Orchestrator] Enqueued {request.file_path} "
            f"(library: {request.library}, position {len(self._queue)})"
        )
        return True

    def _is_already_completed(self, request: JobRequest) -> bool:
        if self._completion_check is None:
            return False
        try:
            return self._completion_check(request)
        except Exception as e:
            logger.error(
                f"[Orchestrator] Completion check failed for {request.file_path}, "
                f"treating as not processed: {e}"
            )
            return False

    # =========================================================================
    # State machine
    # =========================================================================

    def handle_runner(self) -> None:
        """
        Advance the execution slot by one step.

        IDLE: start the next queued job, if any
        BUSY: if the worker is done, join it and report the outcome
        """
        if self._running is None:
            self.start_job()
            return

        if not self._running.future.done():
            return

        self._finish_job()

    def start_job(self) -> bool:
        """
        Start the job at the front of the queue.

        Returns:
            True if a job was started
        """
        if self._running is not None:
            logger.warning("[Orchestrator] Trying to start a job but one is already running")
            return False

        job = self._next_job()
        if job is None:
            logger.debug("[Orchestrator] Nothing in queue, cannot start a new job")
            return False

        validate_job_transition(job.state, JobState.RUNNING)
        request = job.request

        logger.info(f"[Orchestrator] Starting job for {request.file_path} (workflow: {request.workflow.name})")

        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="runner")

        future = self._executor.submit(
            self._runner.run_workflow, request.workflow, request.file_path
        )
        self._running = RunningJob(request=request, future=future)
        return True

    def _next_job(self) -> Optional[RunnableJob]:
        # A follow-up queued while the same file was running may already be done
        while self._queue:
            job = self._queue.popleft()
            if self._is_already_completed(job.request):
                logger.debug(f"[Orchestrator] Already processed, not starting: {job.request.file_path}")
                continue
            return job
        return None

    def _finish_job(self) -> JobOutcome:
        running_job = self._running
        self._running = None

        report = None
        error: Optional[BaseException] = None
        try:
            report = running_job.future.result()
        except RunnerError as e:
            error = e
            logger.error(f"[Orchestrator] Job for {running_job.request.file_path} failed: {e}")
        except Exception as e:
            error = e
            logger.exception(
                f"[Orchestrator] Unexpected error in job for {running_job.request.file_path}: {e}"
            )

        final_state = JobState.FAILED if error is not None else JobState.SUCCEEDED
        validate_job_transition(running_job.state, final_state)

        outcome = JobOutcome(
            request=running_job.request,
            state=final_state,
            started_at=running_job.started_at,
            finished_at=datetime.now(),
            report=report,
            error=error,
        )
        logger.info(f"[Orchestrator] Job finished: {outcome.summary()}")

        if self._on_complete is not None:
            try:
                self._on_complete(outcome)
            except Exception as e:
                logger.error(f"[Orchestrator] Completion hook failed: {e}")

        return outcome
