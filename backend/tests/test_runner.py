"""
Tests for the workflow runner protocol: prepare, probe, run, complete.

Custom tasks run through a real /bin/sh. Aborting probes come from the
builtin H265 task with a failing codec lookup.
"""

import errno
import os
from pathlib import Path

import pytest

from omzet.execution import builtin, runner as runner_module
from omzet.execution.errors import CompletionFailed, PreparationFailed, ProbeAborted
from omzet.execution.process import ProcessOutput
from omzet.execution.runner import WorkflowRunner
from omzet.metadata.errors import MetadataExtractionError
from omzet.workflows.models import BuiltinKind, BuiltinTask, CustomTask, Workflow


def append_task(task_id: str, text: str, probe=None) -> CustomTask:
    """Task that writes input + text to its output file."""
    return CustomTask(
        id=task_id,
        probe=probe,
        command=f'cat "$OMZET_INPUT" > "$OMZET_OUTPUT"; printf \'{text}\' >> "$OMZET_OUTPUT"',
    )


def marker_task(task_id: str, marker: Path, probe=None) -> CustomTask:
    """Task that only leaves a marker file behind, producing no output."""
    return CustomTask(id=task_id, probe=probe, command=f'touch "{marker}"')


@pytest.fixture
def runner():
    return WorkflowRunner()


@pytest.fixture
def failing_codec_lookup(monkeypatch):
    """Make the builtin H265 probe abort."""

    def fail(path):
        raise MetadataExtractionError(path, "No video stream found")

    monkeypatch.setattr(builtin, "get_codec_name", fail)


ABORTING_TASK = BuiltinTask(kind=BuiltinKind.TRANSCODE_H265)


class TestCommit:
    """The source is replaced by the final staged file, and only at the end."""

    def test_output_chaining(self, runner, make_workflow, source_file, scratchpad):
        """Each task reads the previous task's output."""
        workflow = make_workflow(append_task("a", "A"), append_task("b", "B"))

        report = runner.run_workflow(workflow, source_file)

        assert source_file.read_bytes() == b"originalAB"
        assert [r.task_id for r in report.task_reports] == ["a", "b"]
        assert all(r.output_produced for r in report.task_reports)
        assert all(r.exit_code == 0 for r in report.task_reports)

    def test_scratchpad_left_empty(self, runner, make_workflow, source_file, scratchpad):
        workflow = make_workflow(append_task("a", "A"))

        runner.run_workflow(workflow, source_file)

        assert scratchpad.is_dir()
        assert list(scratchpad.iterdir()) == []

    def test_report_identifies_run(self, runner, make_workflow, source_file):
        workflow = make_workflow(append_task("a", "A"))

        report = runner.run_workflow(workflow, source_file)

        assert report.workflow == workflow
        assert report.source_file_path == source_file
        assert report.summary() == f"movies: 1 task(s) ran for {source_file} (0 failed)"

    def test_nonzero_exit_does_not_abort(self, runner, make_workflow, source_file):
        """A failing task is reported; later tasks still run."""
        failing = CustomTask(id="fails", command='echo broken >&2; exit 3')
        workflow = make_workflow(failing, append_task("b", "B"))

        report = runner.run_workflow(workflow, source_file)

        assert [r.exit_code for r in report.task_reports] == [3, 0]
        assert report.failed_tasks[0].stderr == "broken\n"
        assert source_file.read_bytes() == b"originalB"

    def test_failed_transcode_leaves_source_intact(self, runner, make_workflow, source_file, monkeypatch):
        """A transcode that dies after writing part of its output commits nothing new."""

        def crash_midway(cmd, working_directory, env_vars=None):
            Path(cmd[-1]).write_bytes(b"PARTIAL")
            return ProcessOutput(1, "", "Conversion failed!")

        monkeypatch.setattr(builtin, "get_codec_name", lambda path: "h264")
        monkeypatch.setattr(builtin, "find_ffmpeg", lambda: "/opt/ffmpeg")
        monkeypatch.setattr(builtin, "run_command", crash_midway)

        report = runner.run_workflow(make_workflow(BuiltinTask(kind=BuiltinKind.TRANSCODE_H265)), source_file)

        assert source_file.read_bytes() == b"original"
        assert report.task_reports[0].exit_code == 1
        assert not report.task_reports[0].output_produced


class TestStagingIsolation:
    """Tasks only ever see the staged copy."""

    def test_tasks_work_on_staged_copy(self, runner, make_workflow, source_file, scratchpad, tmp_path):
        during = tmp_path / "during.txt"
        seen_input = tmp_path / "input_path.txt"
        task = CustomTask(
            id="in_place",
            command=(
                f'echo "$OMZET_INPUT" > "{seen_input}"; '
                f'printf X >> "$OMZET_INPUT"; '
                f'cat "{source_file}" > "{during}"'
            ),
        )

        runner.run_workflow(make_workflow(task), source_file)

        staged_path = Path(seen_input.read_text().strip())
        assert staged_path.parent == scratchpad
        assert staged_path.name.startswith("movie-")
        assert staged_path.suffix == ".mkv"
        # Source untouched while the task ran, committed afterwards
        assert during.read_bytes() == b"original"
        assert source_file.read_bytes() == b"originalX"

    def test_source_untouched_on_abort(self, runner, make_workflow, source_file, failing_codec_lookup):
        workflow = make_workflow(append_task("a", "A"), ABORTING_TASK)

        with pytest.raises(ProbeAborted):
            runner.run_workflow(workflow, source_file)

        assert source_file.read_bytes() == b"original"


class TestProbeShortCircuit:
    """An aborting probe fails the run before any task executes."""

    def test_task_after_abort_never_runs(self, runner, make_workflow, source_file, tmp_path, failing_codec_lookup):
        marker = tmp_path / "b_ran"
        workflow = make_workflow(ABORTING_TASK, marker_task("b", marker))

        with pytest.raises(ProbeAborted) as exc_info:
            runner.run_workflow(workflow, source_file)

        assert exc_info.value.task_id == "builtin:transcode_h265"
        assert not marker.exists()

    def test_task_before_abort_never_runs(self, runner, make_workflow, source_file, tmp_path, failing_codec_lookup):
        """All probes are evaluated before the first task starts."""
        marker = tmp_path / "a_ran"
        workflow = make_workflow(marker_task("a", marker), ABORTING_TASK)

        with pytest.raises(ProbeAborted):
            runner.run_workflow(workflow, source_file)

        assert not marker.exists()

    def test_staged_copy_removed(self, runner, make_workflow, source_file, scratchpad, failing_codec_lookup):
        with pytest.raises(ProbeAborted):
            runner.run_workflow(make_workflow(ABORTING_TASK), source_file)

        assert list(scratchpad.iterdir()) == []


class TestSkipSemantics:
    """Skipped tasks do not run and produce no report."""

    def test_skipped_task_excluded(self, runner, make_workflow, source_file, tmp_path):
        skipped_marker = tmp_path / "a_ran"
        seen = tmp_path / "seen.txt"
        a = marker_task("a", skipped_marker, probe="exit 1")
        b = CustomTask(id="b", command=f'cat "$OMZET_INPUT" > "{seen}"')

        report = runner.run_workflow(make_workflow(a, b), source_file)

        assert [r.task_id for r in report.task_reports] == ["b"]
        assert not skipped_marker.exists()
        assert seen.read_bytes() == b"original"

    def test_all_skipped_still_succeeds(self, runner, make_workflow, source_file):
        workflow = make_workflow(append_task("a", "A", probe="exit 1"))

        report = runner.run_workflow(workflow, source_file)

        assert report.task_reports == []
        assert source_file.read_bytes() == b"original"


class TestMissingOutput:
    """A task that writes no output is tolerated with a warning."""

    def test_next_task_sees_same_file(self, runner, make_workflow, source_file, tmp_path):
        marker = tmp_path / "a_ran"
        workflow = make_workflow(marker_task("a", marker), append_task("b", "B"))

        report = runner.run_workflow(workflow, source_file)

        first, second = report.task_reports
        assert marker.exists()
        assert first.output_produced is False
        assert len(first.warnings) == 1
        assert "did not output any file" in first.warnings[0]
        assert second.output_produced is True
        assert source_file.read_bytes() == b"originalB"


class TestEmptyWorkflow:
    def test_no_tasks(self, runner, make_workflow, source_file, scratchpad):
        report = runner.run_workflow(make_workflow(), source_file)

        assert report.task_reports == []
        assert report.summary() == f"movies: no tasks ran for {source_file}"
        assert source_file.read_bytes() == b"original"
        assert list(scratchpad.iterdir()) == []


class TestPreparationFailed:
    """Failures before any task runs leave the source untouched."""

    def test_missing_source(self, runner, make_workflow, library_dir):
        with pytest.raises(PreparationFailed) as exc_info:
            runner.run_workflow(make_workflow(), library_dir / "missing.mkv")

        assert exc_info.value.reason == PreparationFailed.COPY

    def test_scratchpad_not_creatable(self, runner, source_file, tmp_path):
        blocker = tmp_path / "not_a_directory"
        blocker.write_text("")
        workflow = Workflow(name="w", scratchpad_directory=blocker / "scratchpad")

        with pytest.raises(PreparationFailed) as exc_info:
            runner.run_workflow(workflow, source_file)

        assert exc_info.value.reason == PreparationFailed.SCRATCHPAD
        assert source_file.read_bytes() == b"original"


class TestCompletionFailed:
    def test_source_directory_gone(self, runner, make_workflow, source_file, scratchpad):
        """The staged result is kept when it cannot be moved back."""
        task = CustomTask(id="remove_library", command=f'rm -rf "{source_file.parent}"')

        with pytest.raises(CompletionFailed) as exc_info:
            runner.run_workflow(make_workflow(task), source_file)

        assert exc_info.value.source_path == source_file
        assert exc_info.value.staged_path.exists()
        assert exc_info.value.staged_path.parent == scratchpad


class TestCrossFilesystemCommit:
    def test_falls_back_to_copy_and_rename(self, runner, make_workflow, source_file, scratchpad, monkeypatch):
        real_replace = os.replace

        def replace(src, dst):
            if Path(dst) == source_file and Path(src).parent == scratchpad:
                raise OSError(errno.EXDEV, "Invalid cross-device link")
            return real_replace(src, dst)

        monkeypatch.setattr(runner_module.os, "replace", replace)

        runner.run_workflow(make_workflow(append_task("a", "A")), source_file)

        assert source_file.read_bytes() == b"originalA"
        assert list(scratchpad.iterdir()) == []
        assert sorted(p.name for p in source_file.parent.iterdir()) == ["movie.mkv"]
