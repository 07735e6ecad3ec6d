"""
Omzet application: wires configuration, state store, library monitors and
the job orchestrator together.

Threads:
- one monitor thread per library, named after the library
- one orchestrator thread, which owns the single runner worker
"""

import logging
import threading
from typing import List, Optional

from .config.models import ResolvedConfig
from .execution.runner import WorkflowRunner
from .jobs.models import JobOutcome, JobRequest
from .jobs.orchestrator import JobOrchestrator
from .libraries.monitor import LibraryMonitor
from .persistence.errors import PersistenceError
from .persistence.fingerprint import compute_file_fingerprint
from .persistence.manager import StateStore

logger = logging.getLogger(__name__)


class App:
    """
    Example:
        >>> app = App(read_config(), StateStore())
        >>> app.run()  # blocks until stop() or Ctrl-C
    """

    def __init__(self, config: ResolvedConfig, store: Optional[StateStore] = None):
        self.config = config
        self.store = store

        settings = config.settings
        self.orchestrator, self._sender = JobOrchestrator.create(
            runner=WorkflowRunner(shell=settings.runner.shell),
            poll_interval=settings.orchestrator.poll_interval,
            in_flight_policy=settings.orchestrator.in_flight_duplicates,
            completion_check=self.is_completed if store is not None else None,
            on_complete=self.record_outcome,
        )

        self.monitors: List[LibraryMonitor] = [
            LibraryMonitor(
                library=library,
                workflow=config.workflow_for(library),
                sender=self._sender,
                scan_interval=settings.monitor.scan_interval,
            )
            for library in config.libraries.values()
        ]
        self._threads: List[threading.Thread] = []

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Start the orchestrator and monitor threads."""
        if self._threads:
            raise RuntimeError("App already started")

        orchestrator_thread = threading.Thread(
            target=self.orchestrator.start, name="orchestrator", daemon=True
        )
        self._threads.append(orchestrator_thread)

        for monitor in self.monitors:
            self._threads.append(
                threading.Thread(target=monitor.start, name=monitor.library.name, daemon=True)
            )

        for thread in self._threads:
            thread.start()

        logger.info(f"[App] Started with {len(self.monitors)} library monitor(s)")

    def stop(self) -> None:
        """
        Stop scanning and shut down the orchestrator.

        A running workflow is allowed to finish, queued jobs are discarded.
        """
        logger.info("[App] Stopping")
        for monitor in self.monitors:
            monitor.stop()
        self.orchestrator.stop()
        self._sender.close()

    def join(self, timeout: Optional[float] = None) -> None:
        for thread in self._threads:
            thread.join(timeout)

    def run(self) -> None:
        """Start, then block until the orchestrator exits or Ctrl-C."""
        self.start()
        orchestrator_thread = self._threads[0]
        try:
            while orchestrator_thread.is_alive():
                orchestrator_thread.join(timeout=1.0)
        except KeyboardInterrupt:
            logger.info("[App] Interrupted, waiting for the running job to finish")
        finally:
            self.stop()
            self.join()
        logger.info("[App] Stopped")

    # =========================================================================
    # State store hooks
    # =========================================================================

    def is_completed(self, request: JobRequest) -> bool:
        """Completion check handed to the orchestrator."""
        return self.store.has_completed(request.file_path, request.workflow.name)

    def record_outcome(self, outcome: JobOutcome) -> None:
        """Completion hook handed to the orchestrator."""
        if not outcome.succeeded:
            return

        if self.store is None:
            return

        request = outcome.request
        try:
            fingerprint = compute_file_fingerprint(request.file_path)
            self.store.record_completion(request.file_path, request.workflow.name, fingerprint)
        except (OSError, PersistenceError) as e:
            logger.error(f"[App] Failed to record completion of {request.file_path}: {e}")
