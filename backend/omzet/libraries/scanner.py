"""
Filesystem scanner for libraries.

Recursively scans a library directory for files whose extension is
included by the library's workflow.
"""

from pathlib import Path
from typing import List, Optional

from ..workflows.models import Workflow
from .errors import ScanningError
from .models import Library


class LibraryScanner:
    """
    Filesystem scanner for library ingestion.

    Skips hidden files and directories, symlinks, and anything inside the
    workflow's scratchpad directory (a scratchpad nested in a library must
    not feed staged copies back into the queue).
    """

    def __init__(self, skip_hidden: bool = True, follow_symlinks: bool = False):
        """
        Args:
            skip_hidden: Skip files/dirs starting with '.' (default: True)
            follow_symlinks: Accept symbolic links (default: False)
        """
        self.skip_hidden = skip_hidden
        self.follow_symlinks = follow_symlinks

    def scan(self, library: Library, workflow: Workflow) -> List[Path]:
        """
        Scan a library for candidate files.

        Returns:
            Absolute paths of matching files, sorted by path

        Raises:
            ScanningError: If the library directory is missing or unreadable
        """
        root = library.directory

        if not root.exists():
            raise ScanningError(library.name, str(root), "directory does not exist")

        if not root.is_dir():
            raise ScanningError(library.name, str(root), "not a directory")

        scratchpad = self._resolve(workflow.scratchpad_directory)
        candidates = []

        try:
            for item in root.rglob("*"):
                if item.is_symlink() and not self.follow_symlinks:
                    continue

                if self.skip_hidden and self._is_hidden(item, root):
                    continue

                if not item.is_file():
                    continue

                if not workflow.matches(item):
                    continue

                resolved = item.resolve()
                if scratchpad is not None and resolved.is_relative_to(scratchpad):
                    continue

                candidates.append(resolved)

        except OSError as e:
            raise ScanningError(library.name, str(root), str(e)) from e

        return sorted(candidates)

    @staticmethod
    def _is_hidden(item: Path, root: Path) -> bool:
        # rglob descends into hidden directories, so check every component
        return any(part.startswith(".") for part in item.relative_to(root).parts)

    @staticmethod
    def _resolve(path: Path) -> Optional[Path]:
        try:
            return path.resolve()
        except OSError:
            return None
