"""
Library error hierarchy.

All errors are non-fatal to the application. A failed scan is logged and
retried on the next interval.
"""


class LibraryError(Exception):
    """Base exception for library failures."""

    pass


class ScanningError(LibraryError):
    """Library directory could not be scanned."""

    def __init__(self, library: str, directory: str, reason: str):
        self.library = library
        self.directory = directory
        self.reason = reason
        super().__init__(f"Failed to scan library '{library}' at {directory}: {reason}")
