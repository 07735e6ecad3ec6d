"""
Tests for the job orchestrator: deduplication, FIFO order, single
concurrency and lifecycle.

A fake runner stands in for the workflow runner; gated runs block on an
Event until the test releases them.
"""

import threading
import time
from pathlib import Path

from omzet.execution.errors import ProbeAborted
from omzet.execution.results import WorkflowReport
from omzet.jobs.models import InFlightPolicy, JobRequest, JobState, OrchestratorState
from omzet.jobs.orchestrator import JobOrchestrator
from omzet.workflows.models import Workflow


WORKFLOW = Workflow(name="movies", scratchpad_directory=Path("/tmp/omzet-test"))
TIMEOUT = 5.0


def make_request(name: str, library: str = "movies") -> JobRequest:
    return JobRequest(library=library, file_path=Path(f"/media/{name}"), workflow=WORKFLOW)


class FakeRunner:
    """Records calls; optionally blocks each run until released."""

    def __init__(self, gated: bool = False, failures=None):
        self.calls = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()
        self._gate = threading.Event()
        if not gated:
            self._gate.set()
        self._failures = failures or {}

    def release(self):
        self._gate.set()

    def run_workflow(self, workflow, source_file):
        with self._lock:
            self.calls.append(source_file.name)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            self._gate.wait(TIMEOUT)
            failure = self._failures.get(source_file.name)
            if failure is not None:
                raise failure
            return WorkflowReport(workflow=workflow, source_file_path=source_file)
        finally:
            with self._lock:
                self.active -= 1


def tick_until_idle(orchestrator: JobOrchestrator) -> None:
    deadline = time.monotonic() + TIMEOUT
    while orchestrator.is_busy:
        if time.monotonic() > deadline:
            raise AssertionError("Job did not finish in time")
        orchestrator.tick()
        time.sleep(0.01)


def start_in_thread(orchestrator: JobOrchestrator) -> threading.Thread:
    thread = threading.Thread(target=orchestrator.start, name="orchestrator", daemon=True)
    thread.start()
    return thread


class TestDeduplication:
    """Requests equal to a queued request are discarded."""

    def test_duplicates_in_queue_discarded(self):
        orchestrator, sender = JobOrchestrator.create(runner=FakeRunner())
        for _ in range(3):
            sender.send(make_request("a.mkv"))
        sender.send(make_request("b.mkv"))

        orchestrator.handle_incoming_job_requests()

        assert [r.file_path.name for r in orchestrator.queued_requests()] == ["a.mkv", "b.mkv"]

    def test_duplicate_across_ticks_discarded(self):
        orchestrator, sender = JobOrchestrator.create(runner=FakeRunner())
        sender.send(make_request("a.mkv"))
        orchestrator.handle_incoming_job_requests()
        sender.send(make_request("a.mkv"))
        orchestrator.handle_incoming_job_requests()

        assert len(orchestrator.queued_requests()) == 1

    def test_same_file_different_library_kept(self):
        orchestrator, sender = JobOrchestrator.create(runner=FakeRunner())
        sender.send(make_request("a.mkv", library="movies"))
        sender.send(make_request("a.mkv", library="archive"))

        orchestrator.handle_incoming_job_requests()

        assert len(orchestrator.queued_requests()) == 2


class TestInFlightPolicy:
    """Requests equal to the running job follow the configured policy."""

    def _start_running(self, policy):
        runner = FakeRunner(gated=True)
        orchestrator, sender = JobOrchestrator.create(runner=runner, in_flight_policy=policy)
        sender.send(make_request("a.mkv"))
        orchestrator.tick()
        assert orchestrator.current_request() == make_request("a.mkv")
        return orchestrator, sender, runner

    def test_queue_policy_queues_follow_up(self):
        orchestrator, sender, runner = self._start_running(InFlightPolicy.QUEUE)

        sender.send(make_request("a.mkv"))
        orchestrator.handle_incoming_job_requests()

        assert orchestrator.queued_requests() == [make_request("a.mkv")]
        runner.release()
        tick_until_idle(orchestrator)
        orchestrator.shutdown()

    def test_drop_policy_discards(self):
        orchestrator, sender, runner = self._start_running(InFlightPolicy.DROP)

        sender.send(make_request("a.mkv"))
        orchestrator.handle_incoming_job_requests()

        assert orchestrator.queued_requests() == []
        runner.release()
        tick_until_idle(orchestrator)
        orchestrator.shutdown()


class TestCompletionCheck:
    def test_completed_requests_discarded(self):
        orchestrator, sender = JobOrchestrator.create(
            runner=FakeRunner(),
            completion_check=lambda request: request.file_path.name == "done.mkv",
        )
        sender.send(make_request("done.mkv"))
        sender.send(make_request("new.mkv"))

        orchestrator.handle_incoming_job_requests()

        assert [r.file_path.name for r in orchestrator.queued_requests()] == ["new.mkv"]

    def test_failing_check_treated_as_not_completed(self):
        def broken(request):
            raise RuntimeError("database locked")

        orchestrator, sender = JobOrchestrator.create(runner=FakeRunner(), completion_check=broken)
        sender.send(make_request("a.mkv"))

        orchestrator.handle_incoming_job_requests()

        assert len(orchestrator.queued_requests()) == 1

    def test_rechecked_before_start(self):
        """A follow-up queued behind the same file is dropped once that run completed."""
        completed = set()
        orchestrator, sender = JobOrchestrator.create(
            runner=FakeRunner(),
            completion_check=lambda request: request.file_path.name in completed,
        )
        sender.send(make_request("a.mkv"))
        orchestrator.handle_incoming_job_requests()
        completed.add("a.mkv")

        assert orchestrator.start_job() is False
        assert orchestrator.queued_requests() == []


class TestSingleConcurrency:
    """At most one workflow runs at any time."""

    def test_second_job_waits_for_first(self):
        runner = FakeRunner(gated=True)
        orchestrator, sender = JobOrchestrator.create(runner=runner)
        sender.send(make_request("a.mkv"))
        sender.send(make_request("b.mkv"))

        orchestrator.tick()
        orchestrator.tick()
        orchestrator.tick()

        assert orchestrator.state == OrchestratorState.BUSY
        assert orchestrator.current_request() == make_request("a.mkv")
        assert orchestrator.queued_requests() == [make_request("b.mkv")]
        assert runner.calls == ["a.mkv"]

        runner.release()
        tick_until_idle(orchestrator)
        orchestrator.tick()

        assert orchestrator.current_request() == make_request("b.mkv")
        tick_until_idle(orchestrator)
        orchestrator.shutdown()

        assert runner.calls == ["a.mkv", "b.mkv"]
        assert runner.max_active == 1

    def test_start_job_refused_while_busy(self):
        runner = FakeRunner(gated=True)
        orchestrator, sender = JobOrchestrator.create(runner=runner)
        sender.send(make_request("a.mkv"))
        sender.send(make_request("b.mkv"))
        orchestrator.tick()
        orchestrator.handle_incoming_job_requests()

        assert orchestrator.start_job() is False
        assert orchestrator.queued_requests() == [make_request("b.mkv")]

        runner.release()
        tick_until_idle(orchestrator)
        orchestrator.shutdown()

    def test_idle_with_empty_queue(self):
        orchestrator, _ = JobOrchestrator.create(runner=FakeRunner())

        orchestrator.tick()

        assert orchestrator.state == OrchestratorState.IDLE
        assert orchestrator.current_request() is None
        assert orchestrator.start_job() is False


class TestLifecycle:
    """start() runs until the channel is closed and all work is done."""

    def test_processes_in_fifo_order_then_returns(self):
        runner = FakeRunner()
        outcomes = []
        orchestrator, sender = JobOrchestrator.create(
            runner=runner, poll_interval=0.01, on_complete=outcomes.append
        )
        for name in ("c.mkv", "a.mkv", "b.mkv"):
            sender.send(make_request(name))
        sender.close()

        thread = start_in_thread(orchestrator)
        thread.join(TIMEOUT)

        assert not thread.is_alive()
        assert runner.calls == ["c.mkv", "a.mkv", "b.mkv"]
        assert [o.state for o in outcomes] == [JobState.SUCCEEDED] * 3

    def test_close_while_running_waits_for_job(self):
        runner = FakeRunner(gated=True)
        orchestrator, sender = JobOrchestrator.create(runner=runner, poll_interval=0.01)
        sender.send(make_request("a.mkv"))

        thread = start_in_thread(orchestrator)
        deadline = time.monotonic() + TIMEOUT
        while not runner.calls and time.monotonic() < deadline:
            time.sleep(0.01)
        sender.close()
        time.sleep(0.05)

        assert thread.is_alive()
        runner.release()
        thread.join(TIMEOUT)
        assert not thread.is_alive()

    def test_stop_discards_queue(self):
        runner = FakeRunner(gated=True)
        orchestrator, sender = JobOrchestrator.create(runner=runner, poll_interval=0.01)
        sender.send(make_request("a.mkv"))
        sender.send(make_request("b.mkv"))

        thread = start_in_thread(orchestrator)
        deadline = time.monotonic() + TIMEOUT
        while not runner.calls and time.monotonic() < deadline:
            time.sleep(0.01)
        orchestrator.stop()
        runner.release()
        thread.join(TIMEOUT)

        assert not thread.is_alive()
        assert runner.calls == ["a.mkv"]


class TestFailureHandling:
    """A failing job never stops the orchestrator."""

    def test_failures_reported_and_loop_continues(self):
        runner = FakeRunner(failures={
            "aborted.mkv": ProbeAborted("encode"),
            "crashed.mkv": RuntimeError("boom"),
        })
        outcomes = []
        orchestrator, sender = JobOrchestrator.create(
            runner=runner, poll_interval=0.01, on_complete=outcomes.append
        )
        for name in ("aborted.mkv", "crashed.mkv", "fine.mkv"):
            sender.send(make_request(name))
        sender.close()

        thread = start_in_thread(orchestrator)
        thread.join(TIMEOUT)

        assert [o.state for o in outcomes] == [JobState.FAILED, JobState.FAILED, JobState.SUCCEEDED]
        assert isinstance(outcomes[0].error, ProbeAborted)
        assert isinstance(outcomes[1].error, RuntimeError)
        assert outcomes[2].report is not None
        assert "FAILED" in outcomes[0].summary()

    def test_failing_hook_does_not_stop_loop(self):
        runner = FakeRunner()

        def broken_hook(outcome):
            raise RuntimeError("hook failed")

        orchestrator, sender = JobOrchestrator.create(
            runner=runner, poll_interval=0.01, on_complete=broken_hook
        )
        sender.send(make_request("a.mkv"))
        sender.send(make_request("b.mkv"))
        sender.close()

        thread = start_in_thread(orchestrator)
        thread.join(TIMEOUT)

        assert not thread.is_alive()
        assert runner.calls == ["a.mkv", "b.mkv"]
