"""
Library monitor: periodic scanning that feeds the job orchestrator.

One monitor per library, each on its own thread. A monitor never runs
workflows itself; it only sends JobRequests. Deduplication of repeated
sightings of the same file is the orchestrator's job.
"""

import logging
import threading
from typing import List, Optional

from ..jobs.channel import JobSender
from ..jobs.errors import ChannelClosedError
from ..jobs.models import JobRequest
from ..workflows.models import Workflow
from .errors import LibraryError
from .models import Library
from .scanner import LibraryScanner

logger = logging.getLogger(__name__)


DEFAULT_SCAN_INTERVAL = 60.0


class LibraryMonitor:
    """
    Polls a library and submits a job request for every matching file.

    Example:
        >>> monitor = LibraryMonitor(library, workflow, sender)
        >>> threading.Thread(target=monitor.start, name=library.name).start()
        >>> monitor.stop()
    """

    def __init__(
        self,
        library: Library,
        workflow: Workflow,
        sender: JobSender,
        scan_interval: float = DEFAULT_SCAN_INTERVAL,
        scanner: Optional[LibraryScanner] = None,
    ):
        self.library = library
        self.workflow = workflow
        self.scan_interval = scan_interval
        self._sender = sender
        self._scanner = scanner or LibraryScanner()
        self._stop_event = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        """
        Scan until stop() is called.

        The first scan happens immediately. Scan errors are logged and the
        monitor keeps going.
        """
        logger.info(
            f"[Monitor] Watching library '{self.library.name}' at {self.library.directory} "
            f"(workflow: {self.workflow.name}, every {self.scan_interval}s)"
        )
        while not self._stop_event.is_set():
            try:
                self.tick()
            except LibraryError as e:
                logger.error(f"[Monitor] {e}")
            self._stop_event.wait(self.scan_interval)
        logger.info(f"[Monitor] Stopped watching library '{self.library.name}'")

    def stop(self) -> None:
        self._stop_event.set()

    def tick(self) -> List[JobRequest]:
        """
        Scan the library once and dispatch a request per matching file.

        Returns:
            The requests that were dispatched

        Raises:
            ScanningError: If the library could not be scanned
        """
        logger.debug(f"[Monitor] Scanning library '{self.library.name}'")
        files = self._scanner.scan(self.library, self.workflow)

        dispatched = []
        for file_path in files:
            request = JobRequest(
                library=self.library.name,
                file_path=file_path,
                workflow=self.workflow,
            )
            try:
                self._sender.send(request)
            except ChannelClosedError as e:
                logger.warning(f"[Monitor] {e}, stopping library '{self.library.name}'")
                self.stop()
                break
            dispatched.append(request)

        logger.debug(
            f"[Monitor] Library '{self.library.name}': {len(dispatched)} file(s) dispatched"
        )
        return dispatched
