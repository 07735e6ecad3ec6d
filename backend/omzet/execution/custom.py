"""
Custom tasks: user supplied shell scripts.

Probe contract:
- no probe          -> RUN
- exit code 0       -> RUN
- nonzero exit code -> SKIP
- script not run    -> ABORT

Command contract: the exit code is recorded, never fatal. A command that
cannot be run produces a TaskReport without exit code.
"""

import logging
from datetime import datetime

from ..workflows.models import CustomTask
from .context import ProbingContext, TaskContext
from .errors import ScriptExecutionError
from .process import (
    DEFAULT_SHELL,
    INPUT_VARIABLE,
    OUTPUT_VARIABLE,
    TASK_VARIABLE,
    run_script,
)
from .results import ProbeResult, TaskReport

logger = logging.getLogger(__name__)


def probe_custom_task(
    task: CustomTask,
    context: ProbingContext,
    shell: str = DEFAULT_SHELL,
) -> ProbeResult:
    """Run a custom task's probe script against the staged file."""
    if task.probe is None:
        return ProbeResult.RUN

    env_vars = {
        INPUT_VARIABLE: str(context.path),
        TASK_VARIABLE: task.id,
    }

    try:
        output = run_script(task.probe, env_vars, context.directory, shell=shell)
    except ScriptExecutionError as e:
        logger.error(f"[Probe] Task '{task.id}' probe could not run: {e}")
        return ProbeResult.ABORT

    if output.exit_code == 0:
        return ProbeResult.RUN

    logger.info(f"[Probe] Task '{task.id}' probe exited with {output.exit_code}, skipping")
    return ProbeResult.SKIP


def run_custom_task(
    task: CustomTask,
    context: TaskContext,
    shell: str = DEFAULT_SHELL,
) -> TaskReport:
    """Run a custom task's command and capture its outcome."""
    env_vars = {
        INPUT_VARIABLE: str(context.input_path),
        OUTPUT_VARIABLE: str(context.output_path),
    }

    started_at = datetime.now()
    try:
        output = run_script(task.command, env_vars, context.directory, shell=shell)
    except ScriptExecutionError as e:
        logger.error(f"[Task] Task '{task.id}' could not run: {e}")
        return TaskReport(
            task_id=task.id,
            exit_code=None,
            stderr=str(e),
            started_at=started_at,
            completed_at=datetime.now(),
        )

    if output.exit_code != 0:
        logger.warning(f"[Task] Task '{task.id}' exited with code {output.exit_code}")

    return TaskReport(
        task_id=task.id,
        exit_code=output.exit_code,
        stdout=output.stdout,
        stderr=output.stderr,
        started_at=started_at,
        completed_at=datetime.now(),
    )
