"""
Builtin tasks: fixed native logic keyed by BuiltinKind.

TRANSCODE_H265:
- probe: first video stream already 'hevc' -> SKIP, other codec -> RUN,
  codec cannot be determined -> ABORT
- run: ffmpeg re-encodes the video stream with libx265 and copies every
  other stream as-is
"""

import logging
import os
import shutil
from datetime import datetime
from typing import List, Optional

from ..metadata.errors import MetadataError
from ..metadata.extractors import get_codec_name
from ..workflows.models import BuiltinKind, BuiltinTask
from .context import ProbingContext, TaskContext
from .errors import ScriptExecutionError
from .process import run_command
from .results import ProbeResult, TaskReport

logger = logging.getLogger(__name__)


H265_CODEC_NAME = "hevc"

# Cache ffmpeg lookup
_ffmpeg_path: Optional[str] = None


def find_ffmpeg() -> Optional[str]:
    """Find ffmpeg binary path."""
    global _ffmpeg_path

    if _ffmpeg_path:
        return _ffmpeg_path

    # Try to find ffmpeg in PATH
    ffmpeg_path = shutil.which("ffmpeg")
    if ffmpeg_path:
        _ffmpeg_path = ffmpeg_path
        return ffmpeg_path

    # Common install locations
    common_paths = [
        "/usr/local/bin/ffmpeg",
        "/usr/bin/ffmpeg",
        "/opt/homebrew/bin/ffmpeg",
    ]
    for path in common_paths:
        if os.path.isfile(path) and os.access(path, os.X_OK):
            _ffmpeg_path = path
            return path

    return None


def build_h265_command(ffmpeg_path: str, input_path: str, output_path: str) -> List[str]:
    """Build the ffmpeg command line for an H265 transcode."""
    return [
        ffmpeg_path,
        "-y",
        "-nostdin",
        "-i", input_path,
        "-map", "0",
        "-c", "copy",
        "-c:v", "libx265",
        output_path,
    ]


def probe_builtin_task(task: BuiltinTask, context: ProbingContext) -> ProbeResult:
    """Decide whether a builtin task needs to run for the staged file."""
    if task.kind == BuiltinKind.TRANSCODE_H265:
        try:
            codec = get_codec_name(str(context.path))
        except MetadataError as e:
            logger.error(f"[Probe] Unable to determine codec of {context.path}: {e}")
            return ProbeResult.ABORT

        if codec == H265_CODEC_NAME:
            logger.info(f"[Probe] {context.path.name} is already H265, skipping")
            return ProbeResult.SKIP
        return ProbeResult.RUN

    logger.error(f"[Probe] No probe implemented for builtin task {task.kind.value}")
    return ProbeResult.ABORT


def run_builtin_task(task: BuiltinTask, context: TaskContext) -> TaskReport:
    """Execute a builtin task and report its outcome."""
    started_at = datetime.now()

    if task.kind != BuiltinKind.TRANSCODE_H265:
        return TaskReport(
            task_id=task.id,
            exit_code=None,
            stderr=f"Builtin task {task.kind.value} is not implemented",
            started_at=started_at,
            completed_at=datetime.now(),
        )

    ffmpeg_path = find_ffmpeg()
    if ffmpeg_path is None:
        logger.error("[FFmpeg] ffmpeg is not installed or not in PATH")
        return TaskReport(
            task_id=task.id,
            exit_code=None,
            stderr="FFmpeg is not installed or not in PATH",
            started_at=started_at,
            completed_at=datetime.now(),
        )

    cmd = build_h265_command(ffmpeg_path, str(context.input_path), str(context.output_path))
    logger.info(f"[FFmpeg] Executing: {' '.join(cmd)}")

    try:
        output = run_command(cmd, context.directory)
    except ScriptExecutionError as e:
        logger.error(f"[FFmpeg] Transcode could not run: {e}")
        _discard_partial_output(context)
        return TaskReport(
            task_id=task.id,
            exit_code=None,
            stderr=str(e),
            started_at=started_at,
            completed_at=datetime.now(),
        )

    if output.exit_code != 0:
        logger.error(f"[FFmpeg] Transcode failed with code {output.exit_code}")
        _discard_partial_output(context)

    return TaskReport(
        task_id=task.id,
        exit_code=output.exit_code,
        stdout=output.stdout,
        stderr=output.stderr,
        started_at=started_at,
        completed_at=datetime.now(),
    )


def _discard_partial_output(context: TaskContext) -> None:
    """Remove whatever a failed ffmpeg run left at the output path."""
    # An existing output is adopted by the runner, a truncated one must not be
    try:
        if context.output_path.exists():
            logger.warning(f"[FFmpeg] Removing partial output {context.output_path}")
        context.output_path.unlink(missing_ok=True)
    except OSError as e:
        logger.error(f"[FFmpeg] Unable to remove partial output {context.output_path}: {e}")
        raise ScriptExecutionError(
            f"Failed transcode left an output that cannot be removed: {context.output_path}"
        ) from e
