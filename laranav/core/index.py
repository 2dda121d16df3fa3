"""
Project Index — In-memory cache of everything the parsers extract.

One index per opened project. A rebuild runs every parser in a fixed order
and swaps in a complete new snapshot with a single assignment, so readers
never see a half-built state:

    route files -> routes + middleware usages -> kernel aliases
    -> schedule -> command classes -> config items -> config references

The steps do not depend on each other; the order only makes logs readable.
Any step that fails is logged and contributes its empty value, so a rebuild
always completes.

Usage:
    index = ProjectIndex(project_dir, config)
    index.rebuild()
    index.find_expected_namespace(routes_file, line=12)
    index.rebuild_config()        # after a config/ change
"""

import logging
import threading
import time
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, TypeVar

from ..config import Config
from .models import CONSOLE_KEY, IndexSnapshot, IndexStats, Route
from .parsing.exclusions import ExclusionConfig
from .parsing.routes import RouteParser
from .parsing.middleware import MiddlewareParser, KernelParser
from .parsing.commands import CommandParser
from .parsing.config_keys import ConfigParser

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ProjectIndex:
    """
    Owns the current IndexSnapshot and the parsers that build it.

    Thread-safe: builds are serialized, and each one publishes its result
    with a single reference swap under ``_lock``.
    """

    def __init__(self, project_dir: Path, config: Optional[Config] = None):
        self.project_dir = Path(project_dir).resolve()
        self.config = config or Config()

        layout, scan = self.config.layout, self.config.scan
        self.exclusions = ExclusionConfig(scan.exclude)
        self.route_parser = RouteParser(layout.root_namespace, scan.group_lookahead, scan.max_file_size)
        self.middleware_parser = MiddlewareParser(scan.max_file_size)
        self.kernel_parser = KernelParser(self.project_dir, layout, scan.max_file_size)
        self.command_parser = CommandParser(self.project_dir, layout, scan.max_file_size)
        self.config_parser = ConfigParser(self.project_dir, layout, self.exclusions, scan.max_file_size)

        self._snapshot = IndexSnapshot()
        self._lock = threading.Lock()
        self._build_lock = threading.Lock()
        self._closed = False

    # =========================================================================
    # Snapshot access
    # =========================================================================

    @property
    def snapshot(self) -> IndexSnapshot:
        """The current snapshot. Hold on to it for a consistent multi-read."""
        return self._snapshot

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> IndexStats:
        return self._snapshot.stats()

    def _publish(self, snapshot: IndexSnapshot) -> bool:
        with self._lock:
            if self._closed:
                return False
            self._snapshot = snapshot
            return True

    def _step(self, name: str, fn: Callable[[], T], default: T) -> T:
        try:
            return fn()
        except Exception:
            logger.exception("Index step failed", extra={'step': name})
            return default

    # =========================================================================
    # Building
    # =========================================================================

    def discover_route_files(self) -> List[Path]:
        """PHP files under the routes directory, sorted."""
        routes_dir = self.project_dir / self.config.layout.routes_dir
        if not routes_dir.is_dir():
            logger.info("No routes directory", extra={'directory': str(routes_dir)})
            return []
        return sorted(
            p for p in routes_dir.rglob("*.php")
            if p.is_file() and not self.exclusions.is_excluded(p.relative_to(self.project_dir).as_posix())
        )

    def rebuild(self) -> IndexStats:
        """
        Full rebuild.

        Returns:
            Statistics of the snapshot that is current when the call returns
        """
        with self._build_lock:
            if self._closed:
                return self.stats()

            started = time.monotonic()
            routes_by_file: Dict[Path, List[Route]] = {}
            usages_by_file = {}

            for file_path in self._step("discover_routes", self.discover_route_files, []):
                routes_by_file[file_path] = self._step(
                    "routes", lambda: self.route_parser.parse_file(file_path), [])
                usages_by_file[file_path] = self._step(
                    "middleware_usages", lambda: self.middleware_parser.parse_file(file_path), [])

            middleware_definitions = self._step("middleware_definitions", self.kernel_parser.parse_definitions, {})
            scheduled = self._step("schedule", self.command_parser.parse_console_kernel, [])
            command_definitions = self._step("command_classes", self.command_parser.discover_command_classes, {})
            config_items = self._step("config_items", self.config_parser.parse_all, [])
            config_references = self._step("config_references", self.config_parser.scan_config_references, [])

            snapshot = IndexSnapshot(
                routes_by_file=routes_by_file,
                middleware_usages_by_file=usages_by_file,
                middleware_definitions=middleware_definitions,
                scheduled_commands_by_file={CONSOLE_KEY: scheduled},
                command_definitions=command_definitions,
                config_items=config_items,
                config_references=config_references,
                last_build=datetime.now(),
            )
            self._publish(snapshot)

            stats = snapshot.stats()
            logger.info("Index rebuilt", extra={
                **stats.to_dict(),
                'duration_ms': round((time.monotonic() - started) * 1000, 1),
            })
            return stats

    def rebuild_config(self) -> IndexStats:
        """Replace only the config items and references; everything else is kept."""
        with self._build_lock:
            if self._closed:
                return self.stats()

            config_items = self._step("config_items", self.config_parser.parse_all, [])
            config_references = self._step("config_references", self.config_parser.scan_config_references, [])

            with self._lock:
                current = self._snapshot
            snapshot = replace(
                current,
                config_items=config_items,
                config_references=config_references,
                last_build=datetime.now(),
            )
            self._publish(snapshot)

            logger.info("Config index rebuilt", extra={
                'config_items': len(config_items),
                'config_references': len(config_references),
            })
            return snapshot.stats()

    # =========================================================================
    # Queries
    # =========================================================================

    def routes_for_file(self, file_path: Path) -> List[Route]:
        """Routes of one file, parsing and inserting it first if it is not indexed."""
        path = Path(file_path).resolve()
        routes = self._snapshot.routes_by_file.get(path)
        if routes is not None or self._closed:
            return routes or []

        logger.debug("Route file not indexed, parsing on demand", extra={'file': str(path)})
        routes = self._step("routes", lambda: self.route_parser.parse_file(path), [])
        with self._lock:
            if not self._closed:
                current = self._snapshot
                by_file = dict(current.routes_by_file)
                by_file[path] = routes
                self._snapshot = replace(current, routes_by_file=by_file)
        return routes

    def find_expected_namespace(self, file_path: Path, line: int) -> Optional[str]:
        """
        Namespace of the route closest to ``line`` in a routes file.

        The cursor may sit on a related line (a chained modifier, a comment
        above), so the nearest route within ``scan.namespace_tolerance``
        lines is accepted.

        Returns:
            The route's namespace (possibly ""), or None when no route is close
        """
        routes = self.routes_for_file(file_path)
        if not routes:
            return None

        best = min(routes, key=lambda r: abs(r.line - line))
        distance = abs(best.line - line)
        if distance > self.config.scan.namespace_tolerance:
            logger.debug("No route near line", extra={'file': str(file_path), 'line': line, 'distance': distance})
            return None
        return best.namespace

    def close(self) -> None:
        """Drop the snapshot. A closed index answers every query with nothing."""
        with self._lock:
            self._closed = True
            self._snapshot = IndexSnapshot()
