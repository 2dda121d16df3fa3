"""
Project Session — One opened Laravel project and everything that serves it.

The session is the single owner of the index, resolver, rebuild scheduler
and watch router. Nothing is global: two sessions on two projects share
no state.

Usage:
    with ProjectSession("/srv/shop") as session:
        result = session.resolve("routes/api.php", line=14, column=30)
        session.on_file_event("config/app.php", "change")
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from .config import Config, ConfigManager
from .errors import ProjectLayoutError
from .logging import configure_logging
from .core.index import ProjectIndex
from .core.models import IndexStats
from .core.parsing.registry import FileClassifier
from .core.resolver import Resolver, ResolveResult
from .core.watch import RebuildScheduler, WatchRouter

logger = logging.getLogger(__name__)


class ProjectSession:
    """Explicitly owned context for one project root."""

    def __init__(
        self,
        root: Union[str, Path],
        config: Optional[Config] = None,
        configure_logs: bool = True,
    ):
        """
        Args:
            root: Project root directory
            config: Configuration; loaded from .laranav/config.yaml, the user
                config and the environment when omitted
            configure_logs: Attach the configured logging sink

        Raises:
            ProjectLayoutError: If root does not exist or is not a directory
            ConfigError: If the loaded configuration is invalid
        """
        path = Path(root).expanduser()
        if not path.exists():
            raise ProjectLayoutError(path, "does not exist")
        if not path.is_dir():
            raise ProjectLayoutError(path, "not a directory")

        self.project_dir = path.resolve()
        self.config_manager = ConfigManager(self.project_dir)
        self.config = config or self.config_manager.load()

        if configure_logs:
            configure_logging(
                self.config.logging.level,
                json_output=self.config.logging.json,
                log_file=self.config.logging.file or None,
            )

        layout = self.config.layout
        self.index = ProjectIndex(self.project_dir, self.config)
        self.classifier = FileClassifier.from_layout(self.project_dir, layout)
        self.resolver = Resolver(self.index, self.classifier)
        self.scheduler = RebuildScheduler(self.index, self.config.watch.debounce_seconds)
        self.router = WatchRouter(self.project_dir, layout, self.scheduler)

        self._opened = False
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._opened and not self._closed

    def open(self) -> IndexStats:
        """Run the initial full scan."""
        if self._closed:
            raise RuntimeError("Session is closed")
        logger.info("Opening project", extra={'project': str(self.project_dir)})
        stats = self.index.rebuild()
        self._opened = True
        return stats

    def close(self) -> None:
        """Stop the scheduler and drop the index. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.scheduler.stop()
        self.index.close()
        logger.info("Project closed", extra={'project': str(self.project_dir)})

    def __enter__(self) -> 'ProjectSession':
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Delegates
    # -------------------------------------------------------------------------

    def resolve(self, file_path: Union[str, Path], line: int, column: int,
                cancelled: Optional[Callable[[], bool]] = None) -> ResolveResult:
        return self.resolver.resolve(Path(file_path), line, column, cancelled)

    def hover(self, file_path: Union[str, Path], line: int, column: int) -> Optional[str]:
        return self.resolver.hover(Path(file_path), line, column)

    def on_file_event(self, file_path: Union[str, Path], event: str = "change") -> Optional[str]:
        return self.router.on_file_event(Path(file_path), event)

    def stats(self) -> IndexStats:
        return self.index.stats()
