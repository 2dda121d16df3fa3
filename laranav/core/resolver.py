"""
Resolver — Cursor position to cross-file navigation targets.

Dispatch follows the file's kind:

    routes file      middleware -> kernel alias
                     command    -> command class
                     config()   -> declaration
                     Foo@bar    -> controller class / method
    controller       class or method name -> routes using it
    command class    class name -> schedule entries
    console kernel   command    -> command class
    config file      declared key -> every config() usage
    any PHP file     config()   -> declaration

Outcome policy: zero locations is NOT_FOUND, one is FOUND, more than one
is AMBIGUOUS with every candidate returned. Choosing among them is the
caller's job.

Usage:
    resolver = Resolver(index)
    result = resolver.resolve(Path("routes/api.php"), line=14, column=30)
    if result.status == ResolveStatus.FOUND:
        print(result.locations[0])
"""

import logging
import re
from collections import deque
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from .conventions import command_name_to_class_names
from .index import ProjectIndex
from .models import IndexSnapshot, Location
from .parsing.registry import FileClassifier, FileKind
from .parsing.text import read_lines, trimmed_span
from .parsing.routes import RouteTarget, route_target_at
from .parsing.middleware import middleware_at, find_middleware_definition
from .parsing.commands import (
    command_at, find_command_definition, find_schedule_by_class_name, parse_command_signature,
)
from .parsing.config_keys import (
    config_call_at, config_key_at, find_config_definition,
    find_config_references, find_config_references_in_file,
)

logger = logging.getLogger(__name__)


FILE_NAMESPACE = re.compile(r"^\s*namespace\s+([\w\\]+)\s*;", re.MULTILINE)
CLASS_LINE = re.compile(r"^\s*(?:(?:final|abstract|readonly)\s+)*class\s+(\w+)")
METHOD_LINE = re.compile(
    r"^\s*(?:(?:public|private|protected|static|final|abstract)\s+)*function\s+(\w+)\s*\("
)


class ResolveStatus(Enum):
    """Resolution outcome."""
    FOUND = "found"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"


class EntityKind(Enum):
    """What was under the cursor."""
    CONTROLLER = "controller"
    ACTION = "action"
    MIDDLEWARE = "middleware"
    COMMAND = "command"
    CONFIG_USAGE = "config_usage"
    ROUTE = "route"                    # controller -> routes
    SCHEDULE = "schedule"              # command class -> schedule entries
    CONFIG_DECLARATION = "config_declaration"


# Kinds whose target is a definition, and so have a preview line
FORWARD_KINDS = (
    EntityKind.CONTROLLER, EntityKind.ACTION, EntityKind.MIDDLEWARE,
    EntityKind.COMMAND, EntityKind.CONFIG_USAGE,
)


@dataclass
class ResolveResult:
    """Result of a navigation request."""
    status: ResolveStatus
    locations: List[Location] = None
    entity: Optional[EntityKind] = None
    query: str = ""
    suggestions: List[str] = None

    def __post_init__(self):
        if self.locations is None:
            self.locations = []
        if self.suggestions is None:
            self.suggestions = []

    @classmethod
    def from_locations(cls, entity: EntityKind, query: str, locations: List[Location],
                       suggestions: Optional[List[str]] = None) -> 'ResolveResult':
        if not locations:
            status = ResolveStatus.NOT_FOUND
        elif len(locations) == 1:
            status = ResolveStatus.FOUND
        else:
            status = ResolveStatus.AMBIGUOUS
        return cls(status=status, locations=list(locations), entity=entity,
                   query=query, suggestions=suggestions)

    def to_dict(self) -> dict:
        return {
            'status': self.status.value,
            'entity': self.entity.value if self.entity else None,
            'query': self.query,
            'locations': [loc.to_dict() for loc in self.locations],
            'suggestions': list(self.suggestions),
        }


class _Cancelled(Exception):
    """The caller lost interest in the request."""


def file_namespace(file_path: Path) -> Optional[str]:
    """The ``namespace X\\Y;`` declared by a PHP file, or None."""
    lines = read_lines(file_path)
    if lines is None:
        return None
    m = FILE_NAMESPACE.search("\n".join(lines))
    return m.group(1) if m else None


def whole_line_location(file_path: Path, line: int) -> Location:
    """A location selecting the trimmed content of one line."""
    lines = read_lines(file_path)
    if lines is None or not 0 <= line < len(lines):
        return Location(file_path, line, 0, 0)
    start, end = trimmed_span(lines[line])
    return Location(file_path, line, start, end)


def find_class_location(file_path: Path, short_name: str) -> Optional[Location]:
    """The class declaration of ``Name`` or ``NameController`` in a file."""
    lines = read_lines(file_path)
    if lines is None:
        return None
    accepted = (short_name, f"{short_name}Controller")
    for i, line in enumerate(lines):
        m = CLASS_LINE.match(line)
        if m and m.group(1) in accepted:
            return Location(file_path, i, m.start(1), m.end(1))
    return None


def find_method_location(file_path: Path, method: str) -> Optional[Location]:
    lines = read_lines(file_path)
    if lines is None:
        return None
    for i, line in enumerate(lines):
        m = METHOD_LINE.match(line)
        if m and m.group(1) == method:
            return Location(file_path, i, m.start(1), m.end(1))
    return None


class Resolver:
    """
    Answers navigation and preview requests against a ProjectIndex.

    Every request reads one snapshot, so a rebuild finishing mid-request
    cannot mix old and new data.
    """

    def __init__(self, index: ProjectIndex, classifier: Optional[FileClassifier] = None):
        self.index = index
        self.project_dir = index.project_dir
        self.layout = index.config.layout
        self.classifier = classifier or FileClassifier.from_layout(self.project_dir, self.layout)

    def _absolute(self, file_path: Path) -> Path:
        path = Path(file_path)
        if not path.is_absolute():
            path = self.project_dir / path
        return path.resolve()

    # =========================================================================
    # Entry points
    # =========================================================================

    def resolve(
        self,
        file_path: Path,
        line: int,
        column: int,
        cancelled: Optional[Callable[[], bool]] = None,
    ) -> ResolveResult:
        """
        Resolve the reference under a cursor.

        Args:
            file_path: Source file (absolute or project-relative)
            line: 0-based line
            column: 0-based column
            cancelled: Polled between candidate files; True abandons the request

        Returns:
            ResolveResult; NOT_FOUND when nothing navigable is under the cursor
        """
        path = self._absolute(file_path)
        lines = read_lines(path, self.index.config.scan.max_file_size)
        if lines is None or not 0 <= line < len(lines):
            return ResolveResult(status=ResolveStatus.NOT_FOUND)

        kind = self.classifier.classify(path)
        snapshot = self.index.snapshot
        handlers = {
            FileKind.ROUTE: self._from_route_file,
            FileKind.CONTROLLER: self._from_controller_file,
            FileKind.COMMAND: self._from_command_file,
            FileKind.CONSOLE_KERNEL: self._from_console_kernel,
            FileKind.CONFIG: self._from_config_file,
        }

        try:
            result = None
            handler = handlers.get(kind)
            if handler is not None:
                result = handler(snapshot, path, lines, line, column, cancelled)
            if result is None and path.suffix == ".php":
                result = self._config_usage(snapshot, lines[line], column)
        except _Cancelled:
            logger.debug("Resolution cancelled", extra={'file': str(path), 'line': line})
            return ResolveResult(status=ResolveStatus.NOT_FOUND)
        except Exception:
            logger.exception("Resolution failed", extra={'file': str(path), 'line': line})
            return ResolveResult(status=ResolveStatus.NOT_FOUND)

        if result is None:
            logger.debug("Nothing to resolve under cursor", extra={
                'file': str(path), 'line': line, 'column': column, 'kind': kind.value,
            })
            return ResolveResult(status=ResolveStatus.NOT_FOUND)

        logger.debug("Resolved", extra={
            'file': str(path), 'line': line, 'entity': result.entity.value,
            'query': result.query, 'status': result.status.value,
        })
        return result

    def hover(self, file_path: Path, line: int, column: int) -> Optional[str]:
        """
        Preview text for the definition under the cursor.

        Returns:
            The first target's source line, trimmed, or None
        """
        result = self.resolve(file_path, line, column)
        if not result.locations or result.entity not in FORWARD_KINDS:
            return None

        target = result.locations[0]
        lines = read_lines(target.file)
        if lines is None or not 0 <= target.line < len(lines):
            return None
        return lines[target.line].strip()

    # =========================================================================
    # Handlers
    # =========================================================================

    def _from_route_file(self, snapshot, path, lines, line, column, cancelled) -> Optional[ResolveResult]:
        text = lines[line]

        usage = middleware_at(text, column, line, path)
        if usage is not None:
            return self._middleware(snapshot, usage.base_name)

        command = command_at(text, column, line, path)
        if command is not None:
            return self._command(snapshot, command.name)

        config_usage = self._config_usage(snapshot, text, column)
        if config_usage is not None:
            return config_usage

        target = route_target_at(text, column)
        if target is not None:
            return self._route_target(path, line, target, cancelled)
        return None

    def _from_console_kernel(self, snapshot, path, lines, line, column, cancelled) -> Optional[ResolveResult]:
        command = command_at(lines[line], column, line, path)
        if command is None:
            return None
        return self._command(snapshot, command.name)

    def _from_controller_file(self, snapshot, path, lines, line, column, cancelled) -> Optional[ResolveResult]:
        text = lines[line]
        controller = method = None

        m = CLASS_LINE.match(text)
        if m and m.start(1) <= column < m.end(1):
            controller = m.group(1)
        else:
            m = METHOD_LINE.match(text)
            if m and m.start(1) <= column < m.end(1):
                method = m.group(1)
                controller = next(
                    (c.group(1) for c in (CLASS_LINE.match(l) for l in lines) if c),
                    path.stem,
                )
        if controller is None:
            return None

        short = re.sub(r"Controller$", "", controller)
        namespace = file_namespace(path)
        locations = []
        for route in snapshot.all_routes():
            if route.controller != short:
                continue
            if method and route.action != method:
                continue
            if namespace and route.namespace != namespace:
                continue
            locations.append(whole_line_location(route.file, route.line))

        query = f"{short}@{method}" if method else short
        return ResolveResult.from_locations(EntityKind.ROUTE, query, locations)

    def _from_command_file(self, snapshot, path, lines, line, column, cancelled) -> Optional[ResolveResult]:
        m = CLASS_LINE.match(lines[line])
        if not m or not m.start(1) <= column < m.end(1):
            return None

        class_name = m.group(1)
        scheduled = snapshot.all_scheduled_commands()
        own = {name: d for name, d in snapshot.command_definitions.items() if d.file == path}
        matches = find_schedule_by_class_name(own, scheduled, class_name)

        if not own:
            signature = parse_command_signature(path, self.index.config.scan.max_file_size)
            if signature is not None:
                matches = [cmd for cmd in scheduled if cmd.name == signature[0]]

        locations = [whole_line_location(cmd.file, cmd.line) for cmd in matches]
        return ResolveResult.from_locations(EntityKind.SCHEDULE, class_name, locations)

    def _from_config_file(self, snapshot, path, lines, line, column, cancelled) -> Optional[ResolveResult]:
        found = config_key_at(lines, line, column, path.stem)
        if found is None:
            return None

        key = found[0]
        locations: List[Location] = []
        files = []
        for ref in find_config_references(snapshot.config_references, key):
            if ref.file not in files:
                files.append(ref.file)

        for ref_file in files:
            self._check(cancelled)
            locations.extend(find_config_references_in_file(ref_file, key, self.index.config.scan.max_file_size))

        return ResolveResult.from_locations(EntityKind.CONFIG_DECLARATION, key, locations)

    # =========================================================================
    # Forward lookups
    # =========================================================================

    def _middleware(self, snapshot: IndexSnapshot, name: str) -> ResolveResult:
        definition = find_middleware_definition(snapshot.middleware_definitions, name)
        locations = [whole_line_location(definition.file, definition.line)] if definition else []
        return ResolveResult.from_locations(EntityKind.MIDDLEWARE, name, locations)

    def _command(self, snapshot: IndexSnapshot, name: str) -> ResolveResult:
        definition = find_command_definition(snapshot.command_definitions, name)
        if definition is None:
            return ResolveResult.from_locations(
                EntityKind.COMMAND, name, [], suggestions=self.suggest_command_classes(name))

        location = find_class_location(definition.file, definition.class_name)
        if location is None:
            location = Location(definition.file, definition.class_line, 0, 0)
        return ResolveResult.from_locations(EntityKind.COMMAND, name, [location])

    def _config_usage(self, snapshot: IndexSnapshot, text: str, column: int) -> Optional[ResolveResult]:
        call = config_call_at(text, column)
        if call is None:
            return None
        key = call[0]
        definition = find_config_definition(snapshot.config_items, key)
        locations = [definition.location] if definition else []
        return ResolveResult.from_locations(EntityKind.CONFIG_USAGE, key, locations)

    def _route_target(self, path: Path, line: int, target: RouteTarget, cancelled) -> ResolveResult:
        call = target.call
        short = call.short_controller
        expected = self.index.find_expected_namespace(path, line)

        locations = []
        for candidate in self.find_controller_files(short, expected, cancelled):
            self._check(cancelled)
            if target.part == "action":
                location = find_method_location(candidate, call.action)
            else:
                location = find_class_location(candidate, short)
            if location is not None:
                locations.append(location)

        if target.part == "action":
            return ResolveResult.from_locations(EntityKind.ACTION, f"{short}@{call.action}", locations)
        return ResolveResult.from_locations(EntityKind.CONTROLLER, short, locations)

    # =========================================================================
    # Controller files
    # =========================================================================

    def expected_controller_path(self, short_name: str, namespace: str) -> Path:
        """Where PSR-4 puts ``namespace\\NameController``."""
        root = self.layout.root_namespace
        parts = namespace.split("\\")
        if parts and parts[0] == root:
            parts = [self.layout.root_namespace_dir] + parts[1:]
        return self.project_dir.joinpath(*parts, f"{short_name}Controller.php")

    def find_controller_files(
        self,
        short_name: str,
        expected_namespace: Optional[str] = None,
        cancelled: Optional[Callable[[], bool]] = None,
    ) -> List[Path]:
        """
        Controller files for a short name.

        With a known namespace, the PSR-4 path is tried first; otherwise the
        controller roots are searched breadth-first. Candidates that declare
        a different namespace than the expected one are rejected.

        Returns:
            Matching files; every name match when the namespace is unknown
        """
        if expected_namespace:
            expected_path = self.expected_controller_path(short_name, expected_namespace)
            if expected_path.is_file() and file_namespace(expected_path) == expected_namespace:
                return [expected_path]

        wanted = {f"{short_name}Controller.php", f"{short_name}.php"}
        files: List[Path] = []
        queue = deque(
            self.project_dir / root for root in self.layout.controller_roots
            if (self.project_dir / root).is_dir()
        )
        while queue:
            self._check(cancelled)
            directory = queue.popleft()
            try:
                entries = sorted(directory.iterdir())
            except OSError as e:
                logger.warning("Cannot list directory", extra={'directory': str(directory), 'error': str(e)})
                continue
            for entry in entries:
                if entry.is_dir():
                    queue.append(entry)
                elif entry.name in wanted and entry.is_file():
                    files.append(entry.resolve())

        if expected_namespace:
            matching = [f for f in files if file_namespace(f) == expected_namespace]
            rejected = len(files) - len(matching)
            if rejected:
                logger.debug("Controller candidates rejected by namespace", extra={
                    'controller': short_name, 'namespace': expected_namespace, 'rejected': rejected,
                })
            return matching
        return files

    # =========================================================================
    # Suggestions
    # =========================================================================

    def suggest_command_classes(self, name: str) -> List[str]:
        """
        Class names that conventionally implement a command name.

        Variants that exist as files under the commands directory come
        first; with none on disk, every variant is offered.
        """
        variants = command_name_to_class_names(name)
        commands_dir = self.project_dir / self.layout.commands_dir
        if not commands_dir.is_dir():
            return variants

        on_disk = {p.stem for p in commands_dir.rglob("*.php")}
        existing = [v for v in variants if v in on_disk]
        return existing or variants

    @staticmethod
    def _check(cancelled: Optional[Callable[[], bool]]) -> None:
        if cancelled is not None and cancelled():
            raise _Cancelled()
