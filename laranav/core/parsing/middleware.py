"""
Middleware Parser — Middleware usages in routes files, aliases in the HTTP kernel.

Usages come in three shapes, all tried on every line:

    'middleware' => ['auth', 'throttle:60,1']     group options   (GROUP)
    ->middleware('auth')                          chained         (CHAIN)
    ->withoutMiddleware(['csrf'])                 chained         (WITHOUT)

A parameterised name keeps its full text for display and its base name
(text before ":") for lookups. Spans cover the name only, never the quotes.

Definitions are read from the kernel's alias map region only
(``$routeMiddleware = [`` or ``$middlewareAliases = [`` up to its closing
line); matching lines outside that region are ignored.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

from ...config import LayoutConfig
from ..models import MiddlewareDefinition, MiddlewareUsage, MiddlewareUsageKind
from .text import read_lines, is_comment_line, split_quoted_list, unquote

logger = logging.getLogger(__name__)


GROUP_MIDDLEWARE = re.compile(
    r"(['\"])middleware\1\s*=>\s*"
    r"(?:\[(?P<list>[^\]]*)\]|(?P<args>['\"`][^'\"`]+['\"`]))"
)
CHAINED_MIDDLEWARE = re.compile(
    r"->\s*(?P<call>middleware|withoutMiddleware)\s*\(\s*"
    r"(?:\[(?P<list>[^\]]*)\]|(?P<args>[^)\[]*)\))"
)

ALIAS_REGION_START = re.compile(r"\b(routeMiddleware|middlewareAliases)\b.*=")
KERNEL_ENTRY = re.compile(r"['\"`](?P<name>[^'\"`]+)['\"`]\s*=>\s*(?P<target>[^,]+)")


def base_name(full_name: str) -> str:
    """``throttle:200,1,user_id`` gives ``throttle``."""
    return full_name.split(":", 1)[0]


def _usages_from_list(
    body: str,
    offset: int,
    kind: MiddlewareUsageKind,
    file_path: Path,
    line_no: int,
) -> List[MiddlewareUsage]:
    usages = []
    for item, column in split_quoted_list(body, offset):
        unquoted = unquote(item, column)
        if unquoted is None:
            continue  # variables and class references are not names
        name, start = unquoted
        if not name.strip():
            continue
        usages.append(MiddlewareUsage(
            base_name=base_name(name),
            full_name=name,
            kind=kind,
            file=file_path,
            line=line_no,
            start=start,
            end=start + len(name),
        ))
    return usages


def middleware_in_line(line: str, line_no: int = 0, file_path: Path = Path()) -> List[MiddlewareUsage]:
    """Every middleware usage on one line, group shape first."""
    usages: List[MiddlewareUsage] = []

    for m in GROUP_MIDDLEWARE.finditer(line):
        group = "list" if m.group("list") is not None else "args"
        usages.extend(_usages_from_list(
            m.group(group), m.start(group), MiddlewareUsageKind.GROUP, file_path, line_no,
        ))

    for m in CHAINED_MIDDLEWARE.finditer(line):
        kind = MiddlewareUsageKind.WITHOUT if m.group("call") == "withoutMiddleware" else MiddlewareUsageKind.CHAIN
        group = "list" if m.group("list") is not None else "args"
        usages.extend(_usages_from_list(m.group(group), m.start(group), kind, file_path, line_no))

    return usages


def middleware_at(line: str, column: int, line_no: int = 0, file_path: Path = Path()) -> Optional[MiddlewareUsage]:
    """The middleware usage under a cursor column, or None."""
    for usage in middleware_in_line(line, line_no, file_path):
        if usage.contains(column):
            return usage
    return None


class MiddlewareParser:
    """Extracts middleware usages from routes files."""

    def __init__(self, max_file_size: Optional[int] = None):
        self.max_file_size = max_file_size

    def parse_file(self, file_path: Path) -> List[MiddlewareUsage]:
        """
        Parse every middleware usage in a routes file.

        Returns:
            Usages in line order; empty when the file cannot be read
        """
        lines = read_lines(file_path, self.max_file_size)
        if lines is None:
            return []

        usages: List[MiddlewareUsage] = []
        for i, line in enumerate(lines):
            if is_comment_line(line, ("//", "/*", "*", "#")):
                continue
            usages.extend(middleware_in_line(line, i, file_path))

        logger.debug("Middleware usages parsed", extra={'file': str(file_path), 'usages': len(usages)})
        return usages


class KernelParser:
    """
    Reads middleware aliases from the HTTP kernel.

    The kernel is looked up at the HTTP kernel path first and then at the
    console kernel path; a project with neither has no definitions.
    """

    def __init__(self, project_dir: Path, layout: Optional[LayoutConfig] = None,
                 max_file_size: Optional[int] = None):
        self.project_dir = Path(project_dir)
        self.layout = layout or LayoutConfig()
        self.max_file_size = max_file_size

    def find_kernel_file(self) -> Optional[Path]:
        for candidate in (self.layout.http_kernel, self.layout.console_kernel):
            path = self.project_dir / candidate
            if path.is_file():
                return path
        return None

    def parse_definitions(self) -> Dict[str, MiddlewareDefinition]:
        """
        Parse the alias map of the kernel.

        Returns:
            name -> definition; a repeated name keeps its last entry
        """
        kernel_path = self.find_kernel_file()
        if kernel_path is None:
            logger.info("No kernel file found", extra={'project': str(self.project_dir)})
            return {}

        lines = read_lines(kernel_path, self.max_file_size)
        if lines is None:
            return {}
        return self.parse_lines(lines, kernel_path)

    def parse_lines(self, lines: List[str], kernel_path: Path) -> Dict[str, MiddlewareDefinition]:
        definitions: Dict[str, MiddlewareDefinition] = {}
        in_region = False

        for i, line in enumerate(lines):
            trimmed = line.strip()
            if not in_region:
                if ALIAS_REGION_START.search(trimmed) and not is_comment_line(trimmed):
                    in_region = True
                continue

            if ("];" in trimmed or "}" in trimmed) and "=>" not in trimmed:
                break
            if not trimmed or is_comment_line(trimmed):
                continue

            m = KERNEL_ENTRY.search(line)
            if not m:
                continue

            name = m.group("name")
            target = m.group("target").split("//", 1)[0].strip()
            if name in definitions:
                logger.info("Middleware alias redefined", extra={'alias': name, 'line': i})
            definitions[name] = MiddlewareDefinition(
                name=name,
                class_reference=target,
                file=kernel_path,
                line=i,
                start=m.start("name"),
                end=m.end("name"),
            )

        logger.debug("Middleware aliases parsed", extra={'file': str(kernel_path), 'aliases': len(definitions)})
        return definitions


def find_middleware_definition(definitions: Dict[str, MiddlewareDefinition], name: str) -> Optional[MiddlewareDefinition]:
    """Exact lookup by base name. No fuzzy fallback."""
    return definitions.get(base_name(name))
