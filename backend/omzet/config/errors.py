"""
Configuration error hierarchy.

Configuration errors are fatal at startup: the daemon refuses to start with
a configuration it cannot fully resolve.
"""


class ConfigError(Exception):
    """Base exception for configuration failures."""

    pass


class ConfigReadError(ConfigError):
    """Configuration file could not be located, created or read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Unable to read configuration {path}: {reason}")


class ConfigParseError(ConfigError):
    """Configuration file is not valid TOML or does not match the schema."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid configuration {path}: {reason}")


class WorkflowDoesNotExistError(ConfigError):
    """A library references a workflow that is not declared."""

    def __init__(self, name: str, referenced_by: str):
        self.name = name
        self.referenced_by = referenced_by
        super().__init__(
            f"Workflow \"{name}\", referenced by {referenced_by}, does not exist"
        )


class TaskDoesNotExistError(ConfigError):
    """A workflow references a task that is not declared."""

    def __init__(self, task_id: str, workflow: str):
        self.task_id = task_id
        self.workflow = workflow
        super().__init__(
            f"Task \"{task_id}\", referenced by workflow \"{workflow}\", does not exist"
        )


class DuplicateDefinitionError(ConfigError):
    """Two workflows or two tasks share the same name."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"Duplicate {kind} definition: \"{name}\"")
