"""
Route Parser — Line scanner for routes files.

Turns a routes file into an ordered list of Route records, each carrying the
fully qualified namespace of the groups around it. This is a bounded textual
heuristic, not a PHP parser:

- A group start (``Route::group(`` or ``$api->group(``) triggers a lookahead of
  at most ``group_lookahead`` lines for a ``'namespace' => ...`` option.
- A namespaced group pushes (namespace, indentation of the group line).
- A group end (``});`` optionally chained, e.g. ``})->middleware('x');``) pops
  only when its indentation equals the indentation on top of the stack.
- ``Route::group(`` is never nested in this idiom, so it resets the stack.
  Chained groups (``Route::middleware(...)->group(``) nest like ``$api->group(``.

Usage:
    parser = RouteParser(root_namespace="App")
    routes = parser.parse_file(Path("routes/api.php"))

    target = route_target_at(line_text, column)   # controller/action under cursor
"""

import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from ..models import Route
from .text import read_lines, indent_of, split_quoted_list, unquote

logger = logging.getLogger(__name__)


# =============================================================================
# Patterns
# =============================================================================

_RECEIVER = r"(?:\$api\s*->|Route\s*::)"
_TARGET = (
    r"['\"`](?P<path>[^'\"`]+)['\"`]\s*,\s*"
    r"['\"`](?P<controller>[^'\"`@]+)@(?P<action>[^'\"`]+)['\"`]"
)

VERB_ROUTE = re.compile(
    _RECEIVER + r"\s*(?P<verb>get|post|put|delete|patch|options|any)\s*\(\s*" + _TARGET
)
MATCH_ROUTE = re.compile(
    _RECEIVER + r"\s*match\s*\(\s*\[(?P<verbs>.*?)\]\s*,\s*" + _TARGET
)

GROUP_START = re.compile(r"Route\s*::\s*group\s*\(|\$api\s*->\s*group\s*\(")
PRIMARY_GROUP = re.compile(r"Route\s*::\s*group\s*\(")
# Route::namespace('Admin')->prefix('x')->group(function () {
FLUENT_GROUP = re.compile(r"^Route\s*::.*->\s*group\s*\(")

NAMESPACE_OPTION = re.compile(
    r"(?<![\w$])['\"`]?namespace['\"`]?\s*=>\s*"
    r"(?:['\"`](?P<quoted>[^'\"`]+)['\"`]|(?P<bare>[^,\]\}\s'\"]+))"
)
FLUENT_NAMESPACE = re.compile(
    r"(?:Route\s*::|->)\s*namespace\s*\(\s*['\"`](?P<quoted>[^'\"`]+)['\"`]\s*\)"
)
# End of a group's option array: ], function (  /  }, fn (
OPTIONS_END = re.compile(r"[\]\}]\s*,\s*(?:static\s+)?(?:function|fn)\s*\(")

GROUP_END = re.compile(
    r"^\}\s*\)(?:\s*->\s*\w+\s*\([^)]*\))*\s*;\s*(?://.*|/\*.*\*/\s*)?$"
)


# =============================================================================
# Line-level primitives
# =============================================================================

@dataclass(frozen=True)
class RouteCall:
    """
    One route call found on a line, with the spans of its target.

    ``controller`` is the text as written (it may carry a sub-namespace,
    ``Admin\\UserController``); spans are half-open columns.
    """
    method: str
    url_path: str
    controller: str
    action: str
    column: int
    end: int
    controller_start: int
    controller_end: int
    action_start: int
    action_end: int

    @property
    def short_controller(self) -> str:
        """Class name without sub-namespace and without the Controller suffix."""
        return split_controller(self.controller)[1]

    @property
    def namespace_suffix(self) -> str:
        return split_controller(self.controller)[0]


@dataclass(frozen=True)
class RouteTarget:
    """The part of a route call under the cursor."""
    call: RouteCall
    part: str  # "controller" or "action"

    @property
    def action(self) -> Optional[str]:
        return self.call.action if self.part == "action" else None


def split_controller(raw: str) -> Tuple[str, str]:
    """
    Split a controller reference into (namespace prefix, short name).

    ``Admin\\UserController`` gives ("Admin", "User"). The short name has
    its Controller suffix stripped.
    """
    prefix, _, name = raw.strip().lstrip("\\").rpartition("\\")
    return prefix, re.sub(r"Controller$", "", name)


def _match_method(verbs_text: str) -> str:
    verbs = []
    for item, column in split_quoted_list(verbs_text):
        unquoted = unquote(item, column)
        if unquoted:
            verbs.append(unquoted[0].upper())
    return "|".join(verbs) if verbs else "MATCH"


def route_calls(line: str) -> List[RouteCall]:
    """All route calls on a line, in column order."""
    calls = []
    for pattern in (VERB_ROUTE, MATCH_ROUTE):
        for m in pattern.finditer(line):
            if pattern is VERB_ROUTE:
                method = m.group("verb").upper()
            else:
                method = _match_method(m.group("verbs"))
            calls.append(RouteCall(
                method=method,
                url_path=m.group("path"),
                controller=m.group("controller"),
                action=m.group("action"),
                column=m.start(),
                end=m.end(),
                controller_start=m.start("controller"),
                controller_end=m.end("controller"),
                action_start=m.start("action"),
                action_end=m.end("action"),
            ))
    calls.sort(key=lambda c: c.column)
    return calls


def route_target_at(line: str, column: int) -> Optional[RouteTarget]:
    """
    Find the controller or action name under a cursor column.

    Returns:
        RouteTarget, or None when the cursor is not on a target name
    """
    for call in route_calls(line):
        if call.controller_start <= column < call.controller_end:
            return RouteTarget(call, "controller")
        if call.action_start <= column < call.action_end:
            return RouteTarget(call, "action")
    return None


def build_namespace(stack: List[str], root_namespace: str = "App") -> str:
    """
    Compose the namespace for a stack of group declarations, outer to inner.

    An entry equal to or starting with the root namespace is absolute and
    replaces what came before. Anything else is relative: appended with one
    separator, with the root namespace prefixed when nothing precedes it.
    """
    result = ""
    for ns in stack:
        if not ns:
            continue
        clean = re.sub(r"/+", lambda _: "\\", ns).lstrip("\\")
        if clean == root_namespace or clean.startswith(root_namespace + "\\"):
            result = clean
        elif result:
            result = result.rstrip("\\") + "\\" + clean
        else:
            result = root_namespace + "\\" + clean
    return re.sub(r"\\+", lambda _: "\\", result)


def extract_group_namespace(lines: List[str], start: int, lookahead: int = 15) -> Optional[str]:
    """
    Look for a namespace option in the group opened on ``start``.

    The search covers at most ``lookahead`` lines and stops after the line
    that closes the option array. A leading backslash is dropped.
    """
    for i in range(start, min(start + lookahead, len(lines))):
        line = lines[i]
        for pattern in (NAMESPACE_OPTION, FLUENT_NAMESPACE):
            m = pattern.search(line)
            if m:
                value = m.group("quoted") or m.groupdict().get("bare")
                if value:
                    return value.lstrip("\\")
        if OPTIONS_END.search(line):
            break
        # Fluent groups carry their namespace on the opening line only
        if i == start and FLUENT_GROUP.match(line.strip()):
            break
    return None


def _closes_on_same_line(trimmed: str) -> bool:
    return trimmed.endswith(");") and trimmed.count("{") > 0 and trimmed.count("{") == trimmed.count("}")


# =============================================================================
# Parser
# =============================================================================

class RouteParser:
    """
    Parses routes files into Route records.

    Stateless between files: every call starts with empty stacks.
    """

    def __init__(
        self,
        root_namespace: str = "App",
        group_lookahead: int = 15,
        max_file_size: Optional[int] = None,
    ):
        self.root_namespace = root_namespace
        self.group_lookahead = group_lookahead
        self.max_file_size = max_file_size

    def parse_file(self, file_path: Path) -> List[Route]:
        """
        Parse one routes file.

        Returns:
            Routes in source order; empty when the file cannot be read
        """
        started = time.monotonic()
        lines = read_lines(file_path, self.max_file_size)
        if lines is None:
            return []

        try:
            routes = self.parse_lines(lines, file_path)
        except Exception:
            logger.exception("Route file parse failed", extra={'file': str(file_path)})
            return []

        logger.debug("Route file parsed", extra={
            'file': str(file_path),
            'routes': len(routes),
            'duration_ms': round((time.monotonic() - started) * 1000, 1),
        })
        return routes

    def parse_lines(self, lines: List[str], file_path: Path) -> List[Route]:
        routes: List[Route] = []
        namespace_stack: List[str] = []
        indent_stack: List[int] = []

        for i, line in enumerate(lines):
            trimmed = line.strip()
            if not trimmed or trimmed.startswith(("//", "/*")):
                continue

            indent = indent_of(line)
            pushed_here = False

            if GROUP_START.search(trimmed) or FLUENT_GROUP.match(trimmed):
                if PRIMARY_GROUP.search(trimmed):
                    if namespace_stack:
                        logger.debug("Namespace stack reset", extra={'file': str(file_path), 'line': i})
                    namespace_stack.clear()
                    indent_stack.clear()

                namespace = extract_group_namespace(lines, i, self.group_lookahead)
                if namespace:
                    namespace_stack.append(namespace)
                    indent_stack.append(indent)
                    pushed_here = True
                    logger.debug("Namespace pushed", extra={'file': str(file_path), 'line': i, 'namespace': namespace})

            if GROUP_END.match(trimmed) and indent_stack and indent_stack[-1] == indent:
                popped = namespace_stack.pop()
                indent_stack.pop()
                logger.debug("Namespace popped", extra={'file': str(file_path), 'line': i, 'namespace': popped})

            for call in route_calls(line):
                stack = namespace_stack
                if call.namespace_suffix:
                    stack = namespace_stack + [call.namespace_suffix]
                routes.append(Route(
                    method=call.method,
                    url_path=call.url_path,
                    controller=call.short_controller,
                    action=call.action,
                    namespace=build_namespace(stack, self.root_namespace),
                    file=file_path,
                    line=i,
                    column=call.column,
                ))

            # $api->group([...], function ($api) { ... });
            if pushed_here and _closes_on_same_line(trimmed):
                namespace_stack.pop()
                indent_stack.pop()

        if namespace_stack:
            logger.debug("Unterminated route groups", extra={
                'file': str(file_path),
                'open_groups': len(namespace_stack),
            })
        return routes
