"""
Errors — Exception hierarchy for laranav

Only session-level problems raise. Per-file I/O and parse failures are
logged and treated as "this file contributes nothing", so a rebuild always
completes.
"""


class LaranavError(Exception):
    """Base class for all laranav errors."""


class ProjectLayoutError(LaranavError):
    """The project root is missing or is not a directory."""

    def __init__(self, project_dir, reason: str = "not a directory"):
        self.project_dir = project_dir
        self.reason = reason
        super().__init__(f"Cannot open project {project_dir}: {reason}")


class ConfigError(LaranavError):
    """A configuration value failed validation."""
