"""
SQLite state store for Omzet.

Records which files have been processed, and in which state they were left,
so a restart or the next library scan does not process them again.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .errors import PersistenceError, SchemaError
from .fingerprint import compute_file_fingerprint

logger = logging.getLogger(__name__)


# Database schema version for migrations
SCHEMA_VERSION = 1

DATABASE_FILE_NAME = "state.db"


def default_database_path() -> Path:
    """$XDG_DATA_HOME/omzet/state.db, falling back to ~/.local/share."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        base = Path(data_home)
    else:
        base = Path.home() / ".local" / "share"
    return base / "omzet" / DATABASE_FILE_NAME


class StateStore:
    """
    Manages SQLite persistence of completed jobs.

    Stores one row per successful workflow run: the source file, the
    workflow and the fingerprint of the committed file. A file counts as
    processed while its current fingerprint matches the latest recorded
    one; modifying or replacing the file makes it eligible again.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """
        Args:
            db_path: Path to SQLite database file (defaults to the user data directory)
        """
        if db_path is None:
            db_path = default_database_path()

        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(
                f"Cannot create state directory {self.db_path.parent}: {e}"
            ) from e
        self._ensure_schema()

    @contextmanager
    def _connect(self):
        """Context manager for database connections."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open state database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except PersistenceError:
            conn.rollback()
            raise
        except Exception as e:
            conn.rollback()
            raise PersistenceError(f"Database operation failed: {e}") from e
        finally:
            conn.close()

    def _ensure_schema(self):
        """Create schema if it doesn't exist."""
        with self._connect() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                )
            """)

            cursor.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
            row = cursor.fetchone()
            current_version = row[0] if row else 0

            if current_version > SCHEMA_VERSION:
                raise SchemaError(
                    f"State database {self.db_path} has schema version {current_version}, "
                    f"this version of omzet supports up to {SCHEMA_VERSION}"
                )

            if current_version < SCHEMA_VERSION:
                self._migrate_schema(conn, current_version)

    def _migrate_schema(self, conn, from_version: int):
        """Apply schema migrations."""
        cursor = conn.cursor()

        if from_version < 1:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS job_report (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source_file_path TEXT NOT NULL,
                    workflow TEXT NOT NULL,
                    output_file_fingerprint TEXT NOT NULL,
                    completed_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_job_report_source_file_path
                ON job_report (source_file_path)
            """)

            cursor.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                (1, datetime.now().isoformat())
            )
            logger.info(f"[StateStore] Initialized schema version 1 at {self.db_path}")

    # Job reports

    def record_completion(self, source_file_path: Path, workflow: str, fingerprint: str) -> None:
        """Record that a workflow committed its result to a file."""
        with self._connect() as conn:
            conn.execute("""
                INSERT INTO job_report (source_file_path, workflow, output_file_fingerprint, completed_at)
                VALUES (?, ?, ?, ?)
            """, (str(source_file_path), workflow, fingerprint, datetime.now().isoformat()))

    def latest_fingerprint(self, source_file_path: Path, workflow: str) -> Optional[str]:
        """Fingerprint recorded by the most recent completion, if any."""
        with self._connect() as conn:
            cursor = conn.execute("""
                SELECT output_file_fingerprint FROM job_report
                WHERE source_file_path = ? AND workflow = ?
                ORDER BY id DESC LIMIT 1
            """, (str(source_file_path), workflow))
            row = cursor.fetchone()
            return row["output_file_fingerprint"] if row else None

    def has_completed(self, source_file_path: Path, workflow: str) -> bool:
        """
        Check if a file is in the state a previous completion left it in.

        A file that no longer exists, or whose fingerprint changed, has not
        completed.
        """
        recorded = self.latest_fingerprint(source_file_path, workflow)
        if recorded is None:
            return False
        try:
            current = compute_file_fingerprint(source_file_path)
        except OSError:
            return False
        return current == recorded

    def load_job_reports(self, workflow: Optional[str] = None) -> List[Dict]:
        """
        Load recorded completions, oldest first.

        Args:
            workflow: Optional filter by workflow name
        """
        with self._connect() as conn:
            if workflow:
                cursor = conn.execute(
                    "SELECT * FROM job_report WHERE workflow = ? ORDER BY id",
                    (workflow,)
                )
            else:
                cursor = conn.execute("SELECT * FROM job_report ORDER BY id")

            return [
                {
                    "id": row["id"],
                    "source_file_path": row["source_file_path"],
                    "workflow": row["workflow"],
                    "output_file_fingerprint": row["output_file_fingerprint"],
                    "completed_at": row["completed_at"],
                }
                for row in cursor.fetchall()
            ]
