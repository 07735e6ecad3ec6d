"""
Media metadata inspection.

Used by builtin tasks to decide whether a file needs processing.
"""

from .errors import (
    MetadataError,
    MetadataExtractionError,
    FFProbeNotFoundError,
)
from .models import VideoStreamInfo
from .extractors import find_ffprobe, find_video_stream, get_codec_name

__all__ = [
    # Errors
    "MetadataError",
    "MetadataExtractionError",
    "FFProbeNotFoundError",
    # Models
    "VideoStreamInfo",
    # Extraction
    "find_ffprobe",
    "find_video_stream",
    "get_codec_name",
]
