"""
BaseCommand — Shared foundation for all CLI commands

Commands receive the CLI instance and reach its resources through
properties; they never build their own session.
"""

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..cli import NavigatorCLI


class BaseCommand:
    """Base class for CLI commands with access to shared resources."""

    def __init__(self, cli: 'NavigatorCLI'):
        self._cli = cli

    # -------------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------------

    @property
    def project_dir(self):
        """Project root directory."""
        return self._cli.project_dir

    @property
    def config_manager(self):
        return self._cli.config_manager

    @property
    def session(self):
        """Opened ProjectSession (scans on first access)."""
        return self._cli.session

    @property
    def json_output(self) -> bool:
        return self._cli.json_output

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def emit_json(self, data: Any) -> None:
        print(json.dumps(data, indent=2, ensure_ascii=False))

    def relative(self, path) -> str:
        """Project-relative display path; absolute when outside the project."""
        try:
            return str(path.relative_to(self.project_dir))
        except ValueError:
            return str(path)
