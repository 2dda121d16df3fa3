"""
Rebuild Scheduler and Watch Router — File events in, coalesced rebuilds out.

Policy: coalesce. One worker thread runs at most one rebuild at a time;
every request that arrives meanwhile only marks a pending scope, so a burst
of file events produces one follow-up rebuild rather than a queue of them.
A pending "full" rebuild absorbs a "config" one.

Usage:
    scheduler = RebuildScheduler(index, debounce_seconds=0.3)
    router = WatchRouter(project_dir, config.layout, scheduler)

    for pattern in router.watch_patterns():
        host_watcher.register(pattern, router.on_file_event)

    scheduler.flush(timeout=5)   # wait until idle
    scheduler.stop()
"""

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Optional

from ..config import LayoutConfig

logger = logging.getLogger(__name__)

SCOPE_FULL = "full"
SCOPE_CONFIG = "config"
SCOPES = (SCOPE_FULL, SCOPE_CONFIG)

FILE_EVENTS = ("change", "create", "delete")


def merge_scopes(pending: Optional[str], requested: str) -> str:
    """A full rebuild covers a config rebuild."""
    if pending == SCOPE_FULL or requested == SCOPE_FULL:
        return SCOPE_FULL
    return SCOPE_CONFIG


@dataclass
class SchedulerStats:
    """Statistics for scheduler observability."""
    requested: int = 0
    executed: int = 0
    errors: int = 0

    def to_dict(self) -> dict:
        return {
            "requested": self.requested,
            "executed": self.executed,
            "errors": self.errors,
            "coalesced": max(self.requested - self.executed, 0),
        }


class RebuildScheduler:
    """
    Single worker thread that coalesces rebuild requests.

    Thread-safe. The worker starts on the first request.
    """

    def __init__(self, index, debounce_seconds: float = 0.3):
        """
        Args:
            index: Object with rebuild() and rebuild_config()
            debounce_seconds: Quiet period after a request before rebuilding
        """
        self._index = index
        self._debounce = debounce_seconds

        self._lock = threading.Lock()
        self._changed = threading.Condition(self._lock)
        self._pending: Optional[str] = None
        self._running = False
        self._shutdown = False
        self._thread: Optional[threading.Thread] = None

        self._stats = SchedulerStats()

    def request(self, scope: str = SCOPE_FULL) -> bool:
        """
        Ask for a rebuild.

        Returns:
            False if the scheduler is stopped, True otherwise

        Raises:
            ValueError: If scope is not "full" or "config"
        """
        if scope not in SCOPES:
            raise ValueError(f"Unknown rebuild scope: {scope}")

        with self._changed:
            if self._shutdown:
                return False
            self._stats.requested += 1
            self._pending = merge_scopes(self._pending, scope)
            self._changed.notify_all()

            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._worker_loop,
                    name="laranav-rebuild",
                    daemon=True,
                )
                self._thread.start()
        return True

    def _wait_quiet_period(self) -> None:
        deadline = time.monotonic() + self._debounce
        with self._changed:
            while not self._shutdown:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._changed.wait(remaining)

    def _worker_loop(self) -> None:
        """Worker thread main loop."""
        while True:
            with self._changed:
                while self._pending is None and not self._shutdown:
                    self._changed.wait()
                if self._shutdown:
                    return

            if self._debounce > 0:
                self._wait_quiet_period()

            with self._changed:
                if self._shutdown:
                    return
                scope = self._pending
                self._pending = None
                self._running = True

            try:
                if scope == SCOPE_CONFIG:
                    self._index.rebuild_config()
                else:
                    self._index.rebuild()
            except Exception:
                logger.exception("Rebuild failed", extra={'scope': scope})
                with self._lock:
                    self._stats.errors += 1
            finally:
                with self._changed:
                    self._running = False
                    self._stats.executed += 1
                    self._changed.notify_all()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Block until nothing is pending or running.

        Returns:
            True if idle, False on timeout
        """
        with self._changed:
            return self._changed.wait_for(
                lambda: self._shutdown or (self._pending is None and not self._running),
                timeout,
            )

    def stop(self, timeout: float = 5.0) -> None:
        """Drop pending work and stop the worker after its current rebuild."""
        with self._changed:
            self._shutdown = True
            self._pending = None
            self._changed.notify_all()
            thread = self._thread

        if thread is not None:
            thread.join(timeout=timeout)

    @property
    def pending(self) -> Optional[str]:
        with self._lock:
            return self._pending

    def stats(self) -> SchedulerStats:
        """Get scheduler statistics."""
        with self._lock:
            return SchedulerStats(
                requested=self._stats.requested,
                executed=self._stats.executed,
                errors=self._stats.errors,
            )


class WatchRouter:
    """
    Maps file events to rebuild scopes.

    Files directly under the config directory trigger a config rebuild;
    routes, commands and both kernels trigger a full one; anything else is
    ignored.
    """

    def __init__(self, project_dir: Path, layout: Optional[LayoutConfig] = None,
                 scheduler: Optional[RebuildScheduler] = None):
        self.project_dir = Path(project_dir).resolve()
        self.layout = layout or LayoutConfig()
        self.scheduler = scheduler

    def watch_patterns(self) -> List[str]:
        """Glob patterns, relative to the project root, to register with a watcher."""
        layout = self.layout
        return [
            f"{layout.routes_dir.strip('/')}/**/*.php",
            layout.http_kernel,
            f"{layout.commands_dir.strip('/')}/**/*.php",
            layout.console_kernel,
            f"{layout.config_dir.strip('/')}/*.php",
        ]

    def _relative(self, file_path: Path) -> Optional[PurePosixPath]:
        path = Path(file_path)
        if not path.is_absolute():
            path = self.project_dir / path
        try:
            return PurePosixPath(path.resolve().relative_to(self.project_dir).as_posix())
        except ValueError:
            return None

    def scope_for(self, file_path: Path) -> Optional[str]:
        """Rebuild scope a change to ``file_path`` calls for, or None."""
        rel = self._relative(file_path)
        if rel is None or rel.suffix != ".php":
            return None

        layout = self.layout
        if rel.parent == PurePosixPath(layout.config_dir.strip("/")):
            return SCOPE_CONFIG

        if str(rel) in (layout.http_kernel.strip("/"), layout.console_kernel.strip("/")):
            return SCOPE_FULL
        for directory in (layout.routes_dir, layout.commands_dir):
            if PurePosixPath(directory.strip("/")) in rel.parents:
                return SCOPE_FULL
        return None

    def on_file_event(self, file_path: Path, event: str = "change") -> Optional[str]:
        """
        React to a watcher notification.

        Args:
            file_path: File that changed (absolute or project-relative)
            event: "change", "create" or "delete"

        Returns:
            The scope requested, or None when the file is not watched
        """
        if event not in FILE_EVENTS:
            raise ValueError(f"Unknown file event: {event}")

        scope = self.scope_for(file_path)
        if scope is None:
            return None

        logger.debug("File event routed", extra={'file': str(file_path), 'event': event, 'scope': scope})
        if self.scheduler is not None:
            self.scheduler.request(scope)
        return scope
