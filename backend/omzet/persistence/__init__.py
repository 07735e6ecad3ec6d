"""
Persistence: SQLite record of processed files.
"""

from .errors import PersistenceError, SchemaError
from .fingerprint import compute_file_fingerprint
from .manager import StateStore, SCHEMA_VERSION, default_database_path

__all__ = [
    "PersistenceError",
    "SchemaError",
    "compute_file_fingerprint",
    "StateStore",
    "SCHEMA_VERSION",
    "default_database_path",
]
