"""
Configuration loading and resolution.

Default location: $HOME/.config/omzet/omzet.toml
On first start the configuration directory is created and an example
configuration written to it.
"""

import logging
import os
import tomllib
from importlib import resources
from pathlib import Path
from typing import Dict, Optional

from pydantic import ValidationError

from ..libraries.models import Library
from ..workflows.models import (
    BUILTIN_TASK_PREFIX,
    BuiltinKind,
    BuiltinTask,
    CustomTask,
    Task,
    Workflow,
)
from .errors import (
    ConfigParseError,
    ConfigReadError,
    DuplicateDefinitionError,
    TaskDoesNotExistError,
    WorkflowDoesNotExistError,
)
from .models import ConfigFile, ConfigTask, ResolvedConfig, Settings

logger = logging.getLogger(__name__)


CONFIG_DIRECTORY_NAME = "omzet"
CONFIG_FILE_NAME = "omzet.toml"
EXAMPLE_CONFIG_RESOURCE = "example.toml"


def default_config_path() -> Path:
    """
    Raises:
        ConfigReadError: If HOME is not set
    """
    home = os.environ.get("HOME")
    if not home:
        raise ConfigReadError(
            f"~/.config/{CONFIG_DIRECTORY_NAME}/{CONFIG_FILE_NAME}",
            "no HOME environment variable is set, cannot know where configuration lives",
        )
    return Path(home) / ".config" / CONFIG_DIRECTORY_NAME / CONFIG_FILE_NAME


def example_config() -> str:
    """Text of the bundled example configuration."""
    return resources.files(__package__).joinpath(EXAMPLE_CONFIG_RESOURCE).read_text(encoding="utf-8")


def ensure_default_config(config_path: Path) -> bool:
    """
    Create the configuration directory with an example configuration, if
    the directory does not exist yet.

    Returns:
        True if the example configuration was written
    """
    config_dir = config_path.parent
    if config_dir.exists():
        return False

    logger.info(f"[Config] Configuration directory does not exist, creating {config_dir}")
    try:
        config_dir.mkdir(parents=True)
    except OSError as e:
        raise ConfigReadError(str(config_dir), f"unable to create configuration directory: {e}") from e

    logger.info(f"[Config] Writing example configuration to {config_path}")
    try:
        config_path.write_text(example_config(), encoding="utf-8")
    except OSError as e:
        raise ConfigReadError(str(config_path), f"unable to write example configuration: {e}") from e
    return True


def load_config_file(config_path: Path) -> ConfigFile:
    """
    Read and validate a configuration file without resolving references.

    Raises:
        ConfigReadError: If the file cannot be read
        ConfigParseError: If the file is not valid TOML or fails validation
    """
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigReadError(str(config_path), str(e)) from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(str(config_path), str(e)) from e

    try:
        config = ConfigFile.model_validate(data)
    except ValidationError as e:
        raise ConfigParseError(str(config_path), _format_validation_error(e)) from e

    logger.debug(f"[Config] Loaded configuration: {config}")
    return config


def read_config(config_path: Optional[Path] = None) -> ResolvedConfig:
    """
    Load, validate and resolve the configuration.

    Args:
        config_path: Configuration file. Defaults to default_config_path(),
            which is bootstrapped with the example configuration on first use.

    Raises:
        ConfigError: On any read, parse or reference error
    """
    if config_path is None:
        config_path = default_config_path()
        ensure_default_config(config_path)

    config_path = Path(config_path)
    logger.info(f"[Config] Reading configuration from {config_path}")
    config = load_config_file(config_path)
    return resolve_config(config, source=str(config_path))


# =============================================================================
# Resolution
# =============================================================================


def resolve_config(config: ConfigFile, source: str = "<config>") -> ResolvedConfig:
    """
    Replace name references with the objects they name.

    Raises:
        DuplicateDefinitionError: If two workflows or two tasks share a name
        TaskDoesNotExistError: If a workflow references an unknown task
        WorkflowDoesNotExistError: If a library references an unknown workflow
        ConfigParseError: If a resolved object fails validation
    """
    tasks = _index_tasks(config, source)

    workflows: Dict[str, Workflow] = {}
    for raw_workflow in config.workflows:
        if raw_workflow.name in workflows:
            raise DuplicateDefinitionError("workflow", raw_workflow.name)

        resolved_tasks = tuple(
            _resolve_task(task_id, raw_workflow.name, tasks)
            for task_id in raw_workflow.tasks
        )
        try:
            workflows[raw_workflow.name] = Workflow(
                name=raw_workflow.name,
                scratchpad_directory=Path(raw_workflow.scratchpad_directory).expanduser(),
                included_extensions=raw_workflow.included_extensions,
                tasks=resolved_tasks,
            )
        except ValidationError as e:
            raise ConfigParseError(source, _format_validation_error(e)) from e

    libraries: Dict[str, Library] = {}
    for name, raw_library in config.libraries.items():
        if raw_library.workflow not in workflows:
            raise WorkflowDoesNotExistError(raw_library.workflow, f"library \"{name}\"")
        try:
            libraries[name] = Library(
                name=name,
                directory=Path(raw_library.directory).expanduser(),
                workflow=raw_library.workflow,
            )
        except ValidationError as e:
            raise ConfigParseError(source, _format_validation_error(e)) from e

    settings = Settings(
        orchestrator=config.orchestrator,
        monitor=config.monitor,
        runner=config.runner,
    )

    logger.debug(
        f"[Config] Resolved {len(libraries)} library(ies), {len(workflows)} workflow(s), "
        f"{len(tasks)} custom task(s)"
    )
    return ResolvedConfig(libraries=libraries, workflows=workflows, settings=settings)


def _index_tasks(config: ConfigFile, source: str) -> Dict[str, CustomTask]:
    tasks: Dict[str, CustomTask] = {}
    for raw_task in config.tasks:
        if raw_task.id in tasks:
            raise DuplicateDefinitionError("task", raw_task.id)
        tasks[raw_task.id] = _custom_task(raw_task, source)
    return tasks


def _custom_task(raw_task: ConfigTask, source: str) -> CustomTask:
    try:
        return CustomTask(
            id=raw_task.id,
            description=raw_task.description,
            probe=raw_task.probe,
            command=raw_task.command,
        )
    except ValidationError as e:
        raise ConfigParseError(source, _format_validation_error(e)) from e


def _resolve_task(task_id: str, workflow_name: str, tasks: Dict[str, CustomTask]) -> Task:
    if task_id.startswith(BUILTIN_TASK_PREFIX):
        kind = task_id[len(BUILTIN_TASK_PREFIX):]
        try:
            return BuiltinTask(kind=BuiltinKind(kind))
        except ValueError:
            raise TaskDoesNotExistError(task_id, workflow_name) from None

    task = tasks.get(task_id)
    if task is None:
        raise TaskDoesNotExistError(task_id, workflow_name)
    return task


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        parts.append(f"{location}: {detail['msg']}" if location else detail["msg"])
    return "; ".join(parts)
