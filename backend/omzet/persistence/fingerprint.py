"""
File fingerprints.

A fingerprint identifies one state of a file on disk. Library files are
large media files rescanned every minute, so the fingerprint is derived
from file metadata (path, size, modification time) instead of contents.
"""

import hashlib
from pathlib import Path


def compute_file_fingerprint(file_path: Path) -> str:
    """
    Compute a SHA256 fingerprint of a file's path, size and mtime.

    Raises:
        OSError: If the file cannot be stat'ed
    """
    path = Path(file_path).absolute()
    stat = path.stat()
    sha256_hash = hashlib.sha256()
    sha256_hash.update(str(path).encode("utf-8", errors="surrogateescape"))
    sha256_hash.update(b"\0")
    sha256_hash.update(str(stat.st_size).encode("ascii"))
    sha256_hash.update(b"\0")
    sha256_hash.update(str(stat.st_mtime_ns).encode("ascii"))
    return sha256_hash.hexdigest()
