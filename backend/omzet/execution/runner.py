"""
Workflow runner: execute one workflow against one source file.

Pipeline stages:
1. PREPARE: create the scratchpad, copy the source in under a unique name
2. PROBE: ask every task whether it should run (RUN / SKIP / ABORT)
3. RUN: execute surviving tasks in order, chaining output -> input
4. COMPLETE: move the final staged file over the source file

The source file is only touched in stage 4, by a single atomic rename.
Any failure before that leaves it exactly as it was.

The runner is stateless between runs; every run owns its ExecutionContext.
"""

import errno
import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import List, Sequence, Tuple

from ..workflows.models import Task, Workflow
from .context import ExecutionContext
from .errors import CompletionFailed, PreparationFailed, ProbeAborted
from .paths import generate_output_file_name, generate_staging_file_name
from .process import DEFAULT_SHELL
from .results import ProbeResult, TaskReport, WorkflowReport
from .tasks import probe_task, run_task

logger = logging.getLogger(__name__)


class WorkflowRunner:
    """
    Runs workflows synchronously.

    Example:
        >>> runner = WorkflowRunner()
        >>> report = runner.run_workflow(workflow, Path("/media/movie.mkv"))
        >>> print(report.summary())
        movies: 1 task(s) ran for /media/movie.mkv (0 failed)
    """

    def __init__(self, shell: str = DEFAULT_SHELL):
        """
        Args:
            shell: Shell used to run custom task scripts
        """
        self.shell = shell

    def run_workflow(self, workflow: Workflow, source_file: Path) -> WorkflowReport:
        """
        Run every applicable task of a workflow against a source file.

        A run in which every task is skipped (or a workflow without tasks)
        still copies the file through the scratchpad and commits it.

        Returns:
            WorkflowReport with one TaskReport per executed task

        Raises:
            PreparationFailed: Scratchpad or copy failure, source untouched
            ProbeAborted: A probe could not run, no task executed
            CompletionFailed: Final move failed, source untouched
        """
        source_file = Path(source_file)
        logger.info(f"[Runner] Starting workflow '{workflow.name}' for {source_file}")

        # ====================================================================
        # STAGE 1: PREPARE
        # ====================================================================
        context = self.prepare(workflow.scratchpad_directory, source_file)

        # ====================================================================
        # STAGE 2: PROBE
        # ====================================================================
        logger.info("[Runner] Running probes to determine tasks")
        try:
            tasks_to_run = self.probe_tasks(workflow.tasks, context)
        except ProbeAborted:
            context.input_file.unlink(missing_ok=True)
            raise

        # ====================================================================
        # STAGE 3: RUN
        # ====================================================================
        if tasks_to_run:
            logger.info(f"[Runner] Running {len(tasks_to_run)} task(s)")
        else:
            logger.info("[Runner] No probe requested a task to run")
        task_reports = self.run_tasks(tasks_to_run, context)

        # ====================================================================
        # STAGE 4: COMPLETE
        # ====================================================================
        self.complete_run(context)

        report = WorkflowReport(
            workflow=workflow,
            source_file_path=source_file,
            task_reports=task_reports,
        )
        logger.info(f"[Runner] {report.summary()}")
        return report

    # =========================================================================
    # Stages
    # =========================================================================

    def prepare(self, scratchpad_directory: Path, source_file_path: Path) -> ExecutionContext:
        """
        Create the area where file transformations are done.

        Raises:
            PreparationFailed: If the scratchpad cannot be created or the
                source file cannot be copied into it
        """
        scratchpad_directory = Path(scratchpad_directory)
        logger.debug(f"[Runner] Creating scratchpad directory at {scratchpad_directory}")

        try:
            scratchpad_directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PreparationFailed(PreparationFailed.SCRATCHPAD, scratchpad_directory, e) from e

        input_file_name = generate_staging_file_name(source_file_path)
        input_file = scratchpad_directory / input_file_name
        logger.debug(f"[Runner] Copying source file into scratchpad at {input_file}")

        try:
            shutil.copy2(source_file_path, input_file)
        except OSError as e:
            raise PreparationFailed(PreparationFailed.COPY, input_file, e) from e

        return ExecutionContext(
            scratchpad_directory=scratchpad_directory,
            source_file_path=source_file_path,
            input_file=input_file,
            output_file=scratchpad_directory / generate_output_file_name(input_file_name),
        )

    def probe_tasks(self, tasks: Sequence[Task], context: ExecutionContext) -> List[Task]:
        """
        Probe every task against the staged file, in workflow order.

        Every probe is evaluated before the verdict: a single ABORT fails the
        run before any task has executed.

        Returns:
            Tasks whose probe resolved to RUN, in workflow order

        Raises:
            ProbeAborted: If any probe resolved to ABORT
        """
        probing_context = context.probing_context()

        probe_results: List[Tuple[Task, ProbeResult]] = []
        for task in tasks:
            result = probe_task(task, probing_context, shell=self.shell)
            logger.debug(f"[Runner] Probe '{task.id}': {result.value}")
            probe_results.append((task, result))

        for task, result in probe_results:
            if result == ProbeResult.ABORT:
                raise ProbeAborted(task.id)

        return [task for task, result in probe_results if result == ProbeResult.RUN]

    def run_tasks(self, tasks: Sequence[Task], context: ExecutionContext) -> List[TaskReport]:
        """
        Execute tasks in order, each one reading the previous one's output.

        A task that writes no output file is not an error: the next task
        works on the same staged file.
        """
        task_reports: List[TaskReport] = []

        for task in tasks:
            logger.info(f"[Runner] Running task '{task.id}'")

            # Leftovers from an earlier task must never pass as this task's output
            context.output_file.unlink(missing_ok=True)

            report = run_task(task, context.task_context(), shell=self.shell)

            if context.output_file.exists():
                try:
                    os.replace(context.output_file, context.input_file)
                    report.output_produced = True
                except OSError as e:
                    message = f"Unable to move output of task '{task.id}' into place: {e}"
                    logger.warning(f"[Runner] {message}")
                    report.warnings.append(message)
            else:
                message = (
                    f"Task '{task.id}' did not output any file, "
                    f"following tasks will work on the same file"
                )
                logger.warning(f"[Runner] {message}")
                report.warnings.append(message)

            task_reports.append(report)
            logger.info(f"[Runner] Completed task '{task.id}' (exit code: {report.exit_code})")

        return task_reports

    def complete_run(self, context: ExecutionContext) -> None:
        """
        Replace the source file with the transformed staged file.

        Same filesystem: one atomic rename. Scratchpad on another filesystem:
        the staged file is copied next to the source first and then renamed
        over it, so the source is still replaced in a single atomic step.

        Raises:
            CompletionFailed: If the source could not be replaced; the
                source is unchanged and the staged file is kept
        """
        logger.debug(f"[Runner] Moving transformed file back to {context.source_file_path}")

        try:
            os.replace(context.input_file, context.source_file_path)
            return
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise CompletionFailed(context.input_file, context.source_file_path, e) from e

        self._complete_across_filesystems(context)

    def _complete_across_filesystems(self, context: ExecutionContext) -> None:
        source = context.source_file_path
        temporary = source.with_name(f".{source.name}.omzet-{uuid.uuid4().hex}")

        try:
            shutil.copy2(context.input_file, temporary)
            os.replace(temporary, source)
        except OSError as e:
            temporary.unlink(missing_ok=True)
            raise CompletionFailed(context.input_file, source, e) from e

        context.input_file.unlink(missing_ok=True)


def run_workflow(workflow: Workflow, source_file: Path, shell: str = DEFAULT_SHELL) -> WorkflowReport:
    """Convenience wrapper: run a workflow with a fresh runner."""
    return WorkflowRunner(shell=shell).run_workflow(workflow, source_file)
