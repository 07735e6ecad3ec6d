"""
Libraries: directories of media files watched for processing.

Public API:
    Library: Library configuration model
    LibraryScanner: Filesystem traversal with extension filtering
    LibraryMonitor: Periodic scan -> job request dispatch
"""

from .errors import LibraryError, ScanningError
from .models import Library
from .scanner import LibraryScanner
from .monitor import LibraryMonitor, DEFAULT_SCAN_INTERVAL

__all__ = [
    # Errors
    "LibraryError",
    "ScanningError",
    # Models
    "Library",
    # Core
    "LibraryScanner",
    "LibraryMonitor",
    "DEFAULT_SCAN_INTERVAL",
]
