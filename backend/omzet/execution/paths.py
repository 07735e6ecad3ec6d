"""
Staging file naming for the scratchpad.

Staged file:  {stem}-{uuid4}.{ext}
Output file:  {staged stem}.out.{ext}

The random suffix keeps a run's files apart from stale artifacts left in
the scratchpad by earlier failed runs. The extension is kept so tools that
infer the container from the file name (ffmpeg) keep working.
"""

import uuid
from pathlib import Path


OUTPUT_INFIX = "out"


def generate_staging_file_name(source_path: Path) -> str:
    """
    Generate a unique scratchpad file name for a source file.

    Args:
        source_path: Path to the source file

    Returns:
        File name (not a path) of the staged copy

    Example:
        Path("/media/movie.mkv") -> "movie-3f0c...e1.mkv"
    """
    source_path = Path(source_path)
    suffix = uuid.uuid4()
    if source_path.suffix:
        return f"{source_path.stem}-{suffix}{source_path.suffix}"
    return f"{source_path.name}-{suffix}"


def generate_output_file_name(staging_file_name: str) -> str:
    """
    Derive the output file name a task must write for a staged file.

    Deterministic: the same staged name always gives the same output name.

    Example:
        "movie-3f0c...e1.mkv" -> "movie-3f0c...e1.out.mkv"
    """
    path = Path(staging_file_name)
    if path.suffix:
        return f"{path.stem}.{OUTPUT_INFIX}{path.suffix}"
    return f"{path.name}.{OUTPUT_INFIX}"
