"""
Codec introspection using ffprobe.

Extraction is read-only and non-destructive. Failures raise typed errors;
callers decide what a failure means (the H265 probe turns it into ABORT).
"""

import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .errors import FFProbeNotFoundError, MetadataExtractionError
from .models import VideoStreamInfo

logger = logging.getLogger(__name__)


# Cache ffprobe lookup
_ffprobe_path: Optional[str] = None


def find_ffprobe() -> Optional[str]:
    """
    Locate the ffprobe binary.

    Result is cached after the first successful lookup.
    """
    global _ffprobe_path

    if _ffprobe_path is None:
        _ffprobe_path = shutil.which("ffprobe")

    return _ffprobe_path


def _run_ffprobe(filepath: str) -> Dict[str, Any]:
    """
    Run ffprobe on the video streams and return parsed JSON output.

    Raises:
        FFProbeNotFoundError: If ffprobe is not available
        subprocess.CalledProcessError: If ffprobe fails
        json.JSONDecodeError: If output is not valid JSON
    """
    ffprobe = find_ffprobe()
    if ffprobe is None:
        raise FFProbeNotFoundError()

    cmd = [
        ffprobe,
        "-v", "quiet",
        "-print_format", "json",
        "-show_streams",
        "-select_streams", "v",
        filepath,
    ]

    result = subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        check=True,
    )

    return json.loads(result.stdout)


def _is_attached_picture(stream: Dict[str, Any]) -> bool:
    disposition = stream.get("disposition") or {}
    return disposition.get("attached_pic") == 1


def find_video_stream(filepath: str) -> VideoStreamInfo:
    """
    Extract the first video stream of a media file, ignoring cover art.

    Raises:
        FFProbeNotFoundError: If ffprobe is not available
        MetadataExtractionError: If the file has no video stream or ffprobe fails
    """
    path = Path(filepath)
    if not path.is_file():
        raise MetadataExtractionError(filepath, "Path is not a file")

    try:
        probe_data = _run_ffprobe(filepath)
    except subprocess.CalledProcessError as e:
        raise MetadataExtractionError(
            filepath, f"ffprobe failed with exit code {e.returncode}"
        )
    except json.JSONDecodeError as e:
        raise MetadataExtractionError(
            filepath, f"Failed to parse ffprobe output: {e}"
        )
    except OSError as e:
        raise MetadataExtractionError(filepath, f"Unable to run ffprobe: {e}")

    # Cover art is reported as a video stream too
    streams = [
        stream for stream in probe_data.get("streams") or []
        if not _is_attached_picture(stream)
    ]
    if not streams:
        raise MetadataExtractionError(filepath, "No video stream found")

    try:
        return VideoStreamInfo.model_validate(streams[0])
    except ValidationError as e:
        raise MetadataExtractionError(filepath, f"Unexpected stream data: {e}")


def get_codec_name(filepath: str) -> str:
    """Return the codec name of the first video stream, e.g. 'hevc'."""
    stream = find_video_stream(filepath)
    logger.debug(f"[Metadata] {filepath}: video codec {stream.codec_name}")
    return stream.codec_name
