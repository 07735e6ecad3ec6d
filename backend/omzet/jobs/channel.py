"""
Job channel: many producers, one consumer.

Library monitors hold JobSenders and only ever send. The orchestrator is the
only one draining the channel. Closing the channel stops new work from
being accepted; requests already sent are still drained.
"""

import logging
import queue
import threading
from typing import List

from .errors import ChannelClosedError
from .models import JobRequest

logger = logging.getLogger(__name__)


class JobChannel:
    def __init__(self):
        self._queue: "queue.Queue[JobRequest]" = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def sender(self) -> "JobSender":
        """Create a new sender handle for a producer."""
        return JobSender(self)

    def put(self, request: JobRequest) -> None:
        """
        Add a request to the channel.

        Raises:
            ChannelClosedError: If the channel has been closed
        """
        with self._lock:
            if self._closed:
                raise ChannelClosedError(str(request.file_path))
            self._queue.put(request)

    def close(self) -> None:
        """Stop accepting requests. Idempotent."""
        with self._lock:
            if not self._closed:
                logger.info("[Channel] Job channel closed")
            self._closed = True

    def drain(self) -> List[JobRequest]:
        """Take every request currently available, without blocking."""
        requests = []
        while True:
            try:
                requests.append(self._queue.get_nowait())
            except queue.Empty:
                return requests


class JobSender:
    """Handle producers use to submit job requests. Cheap to copy around."""

    def __init__(self, channel: JobChannel):
        self._channel = channel

    def send(self, request: JobRequest) -> None:
        """
        Submit a job request.

        Raises:
            ChannelClosedError: If the orchestrator no longer accepts work
        """
        self._channel.put(request)

    def close(self) -> None:
        self._channel.close()
