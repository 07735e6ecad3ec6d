"""
Configuration file models.

The Config* models mirror the TOML file one to one and reference each other
by name. resolve_config() turns them into ResolvedConfig, where libraries
and workflows hold the actual objects the daemon runs with.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..execution.process import DEFAULT_SHELL
from ..jobs.models import InFlightPolicy
from ..jobs.orchestrator import DEFAULT_POLL_INTERVAL
from ..libraries.models import Library
from ..libraries.monitor import DEFAULT_SCAN_INTERVAL
from ..workflows.models import Workflow


# =============================================================================
# Settings
# =============================================================================


class OrchestratorSettings(BaseModel):
    """[orchestrator] section."""

    model_config = ConfigDict(extra="forbid")

    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    in_flight_duplicates: InFlightPolicy = InFlightPolicy.QUEUE


class MonitorSettings(BaseModel):
    """[monitor] section."""

    model_config = ConfigDict(extra="forbid")

    scan_interval: float = Field(default=DEFAULT_SCAN_INTERVAL, gt=0)


class RunnerSettings(BaseModel):
    """[runner] section."""

    model_config = ConfigDict(extra="forbid")

    shell: str = DEFAULT_SHELL


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    runner: RunnerSettings = Field(default_factory=RunnerSettings)


# =============================================================================
# File sections
# =============================================================================


class ConfigLibrary(BaseModel):
    """[libraries.<name>] table."""

    model_config = ConfigDict(extra="forbid")

    directory: str
    workflow: str


class ConfigWorkflow(BaseModel):
    """[[workflows]] entry. Tasks are referenced by id."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    scratchpad_directory: str
    included_extensions: List[str] = Field(default_factory=list)
    tasks: List[str] = Field(default_factory=list)


class ConfigTask(BaseModel):
    """[[tasks]] entry."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1)
    description: str = ""
    probe: Optional[str] = None
    command: str


class ConfigFile(BaseModel):
    """Top level of omzet.toml."""

    model_config = ConfigDict(extra="forbid")

    libraries: Dict[str, ConfigLibrary] = Field(default_factory=dict)
    workflows: List[ConfigWorkflow] = Field(default_factory=list)
    tasks: List[ConfigTask] = Field(default_factory=list)
    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    runner: RunnerSettings = Field(default_factory=RunnerSettings)


# =============================================================================
# Resolved
# =============================================================================


class ResolvedConfig(BaseModel):
    """Configuration with every name reference replaced by its target."""

    model_config = ConfigDict(extra="forbid")

    libraries: Dict[str, Library]
    workflows: Dict[str, Workflow]
    settings: Settings = Field(default_factory=Settings)

    def workflow_for(self, library: Library) -> Workflow:
        return self.workflows[library.workflow]
