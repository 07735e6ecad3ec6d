"""
Subprocess execution for probe and task scripts.

Design rules:
- One shell process per script
- Working directory is the scratchpad
- OMZET_* variables are added on top of the daemon's environment
- stdout and stderr are drained together (communicate) so a chatty
  script can never block on a full pipe
- No timeout: a started script runs to completion
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from .errors import ScriptExecutionError

logger = logging.getLogger(__name__)


DEFAULT_SHELL = "/bin/sh"

INPUT_VARIABLE = "OMZET_INPUT"
OUTPUT_VARIABLE = "OMZET_OUTPUT"
TASK_VARIABLE = "OMZET_TASK"


@dataclass(frozen=True)
class ProcessOutput:
    exit_code: int
    stdout: str
    stderr: str


def build_environment(extra: Mapping[str, str]) -> Dict[str, str]:
    """Copy the current environment and overlay the given variables."""
    env = dict(os.environ)
    env.update(extra)
    return env


def run_command(
    cmd: List[str],
    working_directory: Path,
    env_vars: Optional[Mapping[str, str]] = None,
) -> ProcessOutput:
    """
    Run a command to completion and capture its output.

    Args:
        cmd: Command line arguments
        working_directory: Directory the process runs in
        env_vars: Variables added to the inherited environment

    Returns:
        ProcessOutput with exit code and decoded output streams

    Raises:
        ScriptExecutionError: If the process cannot be spawned or waited on,
            or is terminated by a signal
    """
    env = build_environment(env_vars or {})

    try:
        process = subprocess.Popen(
            cmd,
            cwd=str(working_directory),
            env=env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
        )
    except OSError as e:
        raise ScriptExecutionError(f"Unable to spawn {cmd[0]}", e) from e

    logger.debug(f"[Process] Started PID {process.pid}: {cmd[0]}")

    try:
        stdout, stderr = process.communicate()
    except OSError as e:
        process.kill()
        process.wait()
        raise ScriptExecutionError(f"Unable to wait for PID {process.pid}", e) from e

    exit_code = process.returncode
    logger.debug(f"[Process] PID {process.pid} exited with code {exit_code}")

    for line in stdout.splitlines():
        logger.debug(f"[Process] stdout: {line}")
    for line in stderr.splitlines():
        logger.debug(f"[Process] stderr: {line}")

    # Negative return codes mean the process was killed by a signal
    if exit_code < 0:
        raise ScriptExecutionError(f"PID {process.pid} was terminated by signal {-exit_code}")

    return ProcessOutput(exit_code=exit_code, stdout=stdout, stderr=stderr)


def run_script(
    script: str,
    env_vars: Mapping[str, str],
    working_directory: Path,
    shell: str = DEFAULT_SHELL,
) -> ProcessOutput:
    """
    Run a shell script, stopping at the first failing command (sh -e).

    Raises:
        ScriptExecutionError: See run_command
    """
    return run_command([shell, "-e", "-c", script], working_directory, env_vars)
