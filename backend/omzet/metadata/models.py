"""
Metadata data models.

Only what the builtin tasks need: the first video stream of a file.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class VideoStreamInfo(BaseModel):
    """First video stream as reported by ffprobe."""

    model_config = ConfigDict(extra="ignore")

    index: int
    codec_name: str
    width: Optional[int] = None
    height: Optional[int] = None
    pix_fmt: Optional[str] = None
