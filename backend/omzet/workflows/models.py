"""
Workflow and task data models.

Tasks are a closed, tagged union:
- CustomTask: user supplied shell scripts for probe and command
- BuiltinTask: fixed native logic selected by BuiltinKind

All models are frozen so a Workflow can be shared between jobs and
compared structurally (JobRequest deduplication relies on this).
"""

from enum import Enum
from pathlib import Path
from typing import Annotated, FrozenSet, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Task ids with this prefix refer to builtin tasks in configuration
BUILTIN_TASK_PREFIX = "builtin:"


class BuiltinKind(str, Enum):
    """
    Builtin task kinds.

    The set is closed: adding a kind means adding its probe and run logic
    to omzet.execution.builtin.
    """

    TRANSCODE_H265 = "transcode_h265"


class CustomTask(BaseModel):
    """
    A task defined by the user in configuration.

    The probe is optional; a task without a probe always runs.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["custom"] = "custom"
    id: str
    description: str = ""
    probe: Optional[str] = None
    command: str

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Custom ids must be non-empty and must not shadow builtin ids."""
        if not v or not v.strip():
            raise ValueError("Task id cannot be empty")
        if v.startswith(BUILTIN_TASK_PREFIX):
            raise ValueError(
                f"Task id '{v}' uses the reserved prefix '{BUILTIN_TASK_PREFIX}'"
            )
        return v


class BuiltinTask(BaseModel):
    """A task implemented natively by Omzet."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["builtin"] = "builtin"
    kind: BuiltinKind

    @property
    def id(self) -> str:
        return f"{BUILTIN_TASK_PREFIX}{self.kind.value}"

    @property
    def description(self) -> str:
        if self.kind == BuiltinKind.TRANSCODE_H265:
            return "Transcode the video stream to H265"
        return self.kind.value


Task = Annotated[Union[CustomTask, BuiltinTask], Field(discriminator="type")]


class Workflow(BaseModel):
    """
    Ordered list of tasks applied to every matching file of a library.

    Task order is significant: tasks are probed and executed in
    declaration order.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    scratchpad_directory: Path
    included_extensions: FrozenSet[str] = frozenset()
    tasks: Tuple[Task, ...] = ()

    @field_validator("included_extensions", mode="before")
    @classmethod
    def normalize_extensions(cls, v):
        """Store extensions lower-case and without a leading dot."""
        if v is None:
            return frozenset()
        return frozenset(str(ext).lower().lstrip(".") for ext in v)

    def matches(self, path: Path) -> bool:
        """Check if a file's extension is included by this workflow."""
        return path.suffix.lower().lstrip(".") in self.included_extensions
