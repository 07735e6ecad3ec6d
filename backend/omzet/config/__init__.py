"""
Configuration: TOML file loading, validation and reference resolution.
"""

from .errors import (
    ConfigError,
    ConfigReadError,
    ConfigParseError,
    WorkflowDoesNotExistError,
    TaskDoesNotExistError,
    DuplicateDefinitionError,
)
from .models import (
    OrchestratorSettings,
    MonitorSettings,
    RunnerSettings,
    Settings,
    ConfigFile,
    ResolvedConfig,
)
from .loader import (
    default_config_path,
    example_config,
    ensure_default_config,
    load_config_file,
    read_config,
    resolve_config,
)

__all__ = [
    # Errors
    "ConfigError",
    "ConfigReadError",
    "ConfigParseError",
    "WorkflowDoesNotExistError",
    "TaskDoesNotExistError",
    "DuplicateDefinitionError",
    # Models
    "OrchestratorSettings",
    "MonitorSettings",
    "RunnerSettings",
    "Settings",
    "ConfigFile",
    "ResolvedConfig",
    # Loading
    "default_config_path",
    "example_config",
    "ensure_default_config",
    "load_config_file",
    "read_config",
    "resolve_config",
]
