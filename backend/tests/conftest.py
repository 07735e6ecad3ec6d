"""
Pytest configuration for the Omzet test suite.
"""

import sys
from pathlib import Path

import pytest

# Add backend to Python path for test imports
backend_path = Path(__file__).parent.parent
if str(backend_path) not in sys.path:
    sys.path.insert(0, str(backend_path))

from omzet.workflows.models import Workflow


# Configure pytest
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests that sleep through orchestrator poll intervals"
    )
    config.addinivalue_line(
        "markers", "e2e: marks tests that require FFmpeg"
    )


@pytest.fixture
def scratchpad(tmp_path) -> Path:
    """Scratchpad directory (not created, the runner creates it)."""
    return tmp_path / "scratchpad"


@pytest.fixture
def library_dir(tmp_path) -> Path:
    directory = tmp_path / "library"
    directory.mkdir()
    return directory


@pytest.fixture
def source_file(library_dir) -> Path:
    path = library_dir / "movie.mkv"
    path.write_bytes(b"original")
    return path


@pytest.fixture
def make_workflow(scratchpad):
    """Factory for workflows over the test scratchpad."""

    def _make(*tasks, name="movies", extensions=("mkv", "mp4")):
        return Workflow(
            name=name,
            scratchpad_directory=scratchpad,
            included_extensions=extensions,
            tasks=tasks,
        )

    return _make
