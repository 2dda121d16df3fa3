"""
Models — Entity records produced by the parsers and held by the index

Every record is immutable once a scan produces it. A rescan replaces
records wholesale (per file or per section); nothing is patched in place.

Positions are 0-based. Spans are half-open: ``start`` is the first column
of the name, ``end`` is one past its last character.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional


def _jsonable(data: dict) -> dict:
    """Paths and enums become strings, datetimes become ISO text."""
    out = {}
    for key, value in data.items():
        if isinstance(value, Path):
            value = str(value)
        elif isinstance(value, Enum):
            value = value.value
        elif isinstance(value, datetime):
            value = value.isoformat()
        out[key] = value
    return out


# =============================================================================
# Locations
# =============================================================================

@dataclass(frozen=True)
class Location:
    """A navigation target: one span on one line of one file."""
    file: Path
    line: int
    start: int
    end: int

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))

    def __str__(self) -> str:
        return f"{self.file}:{self.line + 1}:{self.start + 1}"


# =============================================================================
# Routes and middleware
# =============================================================================

@dataclass(frozen=True)
class Route:
    """
    One route declaration.

    ``controller`` has its "Controller" suffix stripped; ``namespace`` is the
    fully qualified namespace of the enclosing groups at the source line.
    """
    method: str
    url_path: str
    controller: str
    action: str
    namespace: str
    file: Path
    line: int
    column: int

    @property
    def controller_class(self) -> str:
        """Short class name as it appears on disk."""
        return f"{self.controller}Controller"

    @property
    def qualified_controller(self) -> str:
        if not self.namespace:
            return self.controller_class
        return f"{self.namespace}\\{self.controller_class}"

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


class MiddlewareUsageKind(Enum):
    """Syntactic shape a middleware name was found in."""
    GROUP = "group"       # 'middleware' => ... inside a group's options
    CHAIN = "chain"       # ->middleware(...)
    WITHOUT = "without"   # ->withoutMiddleware(...)


@dataclass(frozen=True)
class MiddlewareUsage:
    """A middleware name referenced from a routes file."""
    base_name: str
    full_name: str
    kind: MiddlewareUsageKind
    file: Path
    line: int
    start: int
    end: int

    def contains(self, column: int) -> bool:
        """Cursor hit test. A cursor resting just after the name still hits."""
        return self.start <= column <= self.end

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


@dataclass(frozen=True)
class MiddlewareDefinition:
    """A ``'name' => Class::class`` entry of the HTTP kernel's alias map."""
    name: str
    class_reference: str
    file: Path
    line: int
    start: int
    end: int

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


# =============================================================================
# Console commands
# =============================================================================

@dataclass(frozen=True)
class ScheduledCommand:
    """A command registered by signature inside the schedule method."""
    name: str
    signature: str
    file: Path
    line: int
    start: int
    end: int

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


@dataclass(frozen=True)
class CommandDefinition:
    """A command class and the name its signature property declares."""
    name: str
    class_name: str
    file: Path
    class_line: int
    signature_line: int

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


# =============================================================================
# Configuration keys
# =============================================================================

@dataclass(frozen=True)
class ConfigItem:
    """
    One ``'key' => value`` declaration in a config file.

    ``key`` is fully qualified: the file's base name followed by the dotted
    path of enclosing array keys (``app.doudian.settle_start_time``).
    """
    key: str
    file_base: str
    value: str
    file: Path
    line: int
    key_start: int
    key_end: int
    value_start: int

    @property
    def path(self) -> str:
        """The key without its file prefix."""
        return self.key[len(self.file_base) + 1:]

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


@dataclass(frozen=True)
class ConfigReference:
    """
    A config key used somewhere in a file.

    Position-less on purpose: locations are recomputed on demand, so usages
    can move or repeat without invalidating the entry.
    """
    key: str
    file: Path

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


@dataclass(frozen=True)
class ConfigDefinition:
    """The declaration a config key resolved to, and how it was matched."""
    query: str
    item: ConfigItem
    exact: bool

    @property
    def location(self) -> Location:
        return Location(self.item.file, self.item.line, self.item.key_start, self.item.key_end)

    def to_dict(self) -> dict:
        return {'query': self.query, 'exact': self.exact, 'item': self.item.to_dict()}


# =============================================================================
# Index snapshot
# =============================================================================

CONSOLE_KEY = "console"


@dataclass(frozen=True)
class IndexSnapshot:
    """
    Everything the index knows at one point in time.

    The index swaps whole snapshots; readers holding an old one keep a
    consistent view until their next read.
    """
    routes_by_file: Dict[Path, List[Route]] = field(default_factory=dict)
    middleware_usages_by_file: Dict[Path, List[MiddlewareUsage]] = field(default_factory=dict)
    middleware_definitions: Dict[str, MiddlewareDefinition] = field(default_factory=dict)
    scheduled_commands_by_file: Dict[str, List[ScheduledCommand]] = field(default_factory=dict)
    command_definitions: Dict[str, CommandDefinition] = field(default_factory=dict)
    config_items: List[ConfigItem] = field(default_factory=list)
    config_references: List[ConfigReference] = field(default_factory=list)
    last_build: Optional[datetime] = None

    def all_routes(self) -> List[Route]:
        return [route for routes in self.routes_by_file.values() for route in routes]

    def all_scheduled_commands(self) -> List[ScheduledCommand]:
        return [cmd for cmds in self.scheduled_commands_by_file.values() for cmd in cmds]

    def stats(self) -> 'IndexStats':
        return IndexStats(
            route_files=len(self.routes_by_file),
            routes=sum(len(r) for r in self.routes_by_file.values()),
            middleware_usages=sum(len(u) for u in self.middleware_usages_by_file.values()),
            middleware_definitions=len(self.middleware_definitions),
            scheduled_commands=sum(len(c) for c in self.scheduled_commands_by_file.values()),
            command_definitions=len(self.command_definitions),
            config_items=len(self.config_items),
            config_references=len(self.config_references),
            last_build=self.last_build,
        )


@dataclass(frozen=True)
class IndexStats:
    """Counts for diagnostic display."""
    route_files: int = 0
    routes: int = 0
    middleware_usages: int = 0
    middleware_definitions: int = 0
    scheduled_commands: int = 0
    command_definitions: int = 0
    config_items: int = 0
    config_references: int = 0
    last_build: Optional[datetime] = None

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))

    def format(self) -> str:
        """Human-readable summary, one count per line."""
        built = self.last_build.strftime("%Y-%m-%d %H:%M:%S") if self.last_build else "never"
        return "\n".join([
            f"Route files:            {self.route_files}",
            f"Routes:                 {self.routes}",
            f"Middleware usages:      {self.middleware_usages}",
            f"Middleware definitions: {self.middleware_definitions}",
            f"Scheduled commands:     {self.scheduled_commands}",
            f"Command definitions:    {self.command_definitions}",
            f"Config items:           {self.config_items}",
            f"Config references:      {self.config_references}",
            f"Last build:             {built}",
        ])
