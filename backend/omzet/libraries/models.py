"""
Library data models.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Library(BaseModel):
    """
    A named directory of media files bound to one workflow.

    Every file below the directory whose extension is included by the
    workflow is submitted for processing.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., description="Unique library name")
    directory: Path = Field(..., description="Absolute path to the library root")
    workflow: str = Field(..., description="Name of the workflow applied to files")

    @field_validator("directory")
    @classmethod
    def validate_absolute_path(cls, v: Path) -> Path:
        """Ensure directory is absolute."""
        if not v.is_absolute():
            raise ValueError(f"Library directory must be absolute: {v}")
        return v
