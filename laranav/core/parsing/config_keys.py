"""
Config Key Parser — Declarations in config files, usages everywhere else.

Declarations: each file directly under the config directory returns a
nested array. Every ``'key' => value`` line becomes a ConfigItem whose key
is the file's base name plus the dotted path of enclosing array keys. A
value that opens a multi-line array is followed to its matching bracket
(depth counter, not a parser) and scanned recursively.

Usages: ``config('app.name')`` and ``config('app.name', $default)`` calls.
The index keeps only (key, file) pairs; exact positions are recomputed on
demand with ``find_config_references_in_file``.

Usage:
    parser = ConfigParser(project_dir, config.layout, exclusions)
    items = parser.parse_all()
    refs = parser.scan_config_references()

    definition = find_config_definition(items, 'app.doudian.settle_start_time')
"""

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from ...config import LayoutConfig
from ..models import ConfigDefinition, ConfigItem, ConfigReference, Location
from .exclusions import ExclusionConfig
from .text import read_lines, indent_of, is_comment_line, find_array_end, bracket_delta

logger = logging.getLogger(__name__)


KEY_VALUE = re.compile(r"(['\"])(?P<key>(?:(?!\1).)+)\1\s*(?P<arrow>=>)\s*(?P<value>.+)")
KEY_BEFORE_ARROW = re.compile(r"['\"](?P<key>[^'\"]+)['\"]\s*=>")

CONFIG_CALL = re.compile(r"(?<![\w$>:])config\s*\(\s*(['\"])(?P<key>[\w.\-]+)\1\s*[,)]")

# Structural lines of a config file that never hold a key
_BOILERPLATE = ("return [", "];")


def _config_call_pattern(key: str):
    return re.compile(r"(?<![\w$>:])config\s*\(\s*(['\"])(?P<key>" + re.escape(key) + r")\1\s*[,)]")


# =============================================================================
# Declarations
# =============================================================================

def _parse_range(
    lines: List[str],
    start: int,
    end: int,
    prefix: str,
    file_base: str,
    file_path: Path,
    items: List[ConfigItem],
) -> None:
    i = start
    while i < end:
        line = lines[i]
        trimmed = line.strip()
        if not trimmed or trimmed in _BOILERPLATE or trimmed.startswith(("//", "*", "/*")):
            i += 1
            continue

        m = KEY_VALUE.search(line)
        if m is None:
            i += 1
            continue

        key = f"{prefix}.{m.group('key')}"
        value = m.group("value").rstrip()
        if value.endswith(","):
            value = value[:-1]
        items.append(ConfigItem(
            key=key,
            file_base=file_base,
            value=value.strip(),
            file=file_path,
            line=i,
            key_start=m.start("key"),
            key_end=m.end("key"),
            value_start=m.end("arrow"),
        ))

        if "[" in value:
            close = find_array_end(lines, i, end)
            if close is not None:
                _parse_range(lines, i + 1, close, key, file_base, file_path, items)
                i = close + 1
                continue
        i += 1


def parse_config_lines(lines: List[str], file_path: Path) -> List[ConfigItem]:
    """Config items of one file, parents before children, in line order."""
    file_base = file_path.stem
    items: List[ConfigItem] = []
    _parse_range(lines, 0, len(lines), file_base, file_base, file_path, items)
    return items


def config_key_at(lines: List[str], line_no: int, column: int, file_base: str) -> Optional[Tuple[str, int, int]]:
    """
    The fully qualified key declared under the cursor in a config file.

    Walks upward from the cursor line; every shallower line that opens an
    array under a key contributes one path segment. The walk stops at the
    file's top-level ``return [``.

    Returns:
        (key, key start column, key end column), or None when the cursor is
        not on a declared key
    """
    if not 0 <= line_no < len(lines):
        return None
    line = lines[line_no]
    m = KEY_VALUE.search(line)
    if m is None or not m.start("key") <= column <= m.end("key"):
        return None

    parts = [m.group("key")]
    level = indent_of(line)
    for i in range(line_no - 1, -1, -1):
        text = lines[i]
        trimmed = text.strip()
        indent = indent_of(text)
        if trimmed and indent < level and "=>" in trimmed and bracket_delta(text) > 0:
            parent = KEY_BEFORE_ARROW.search(trimmed)
            if parent:
                parts.insert(0, parent.group("key"))
                level = indent
        if indent == 0 and ("return [" in trimmed or "= [" in trimmed):
            break

    return f"{file_base}.{'.'.join(parts)}", m.start("key"), m.end("key")


def find_config_definition(items: List[ConfigItem], key: str) -> Optional[ConfigDefinition]:
    """
    Resolve a usage key to its declaration.

    Exact key first. Otherwise, within the file named by the first segment,
    a declaration whose dotted path ends with the rest of the key; failing
    that, the longest declaration path the rest of the key ends with.
    """
    for item in items:
        if item.key == key:
            return ConfigDefinition(query=key, item=item, exact=True)

    file_base, _, remaining = key.partition(".")
    if not remaining:
        return None

    candidates = [item for item in items if item.file_base == file_base]
    for item in candidates:
        if item.path == remaining or item.path.endswith("." + remaining):
            return ConfigDefinition(query=key, item=item, exact=False)

    deeper = [item for item in candidates if remaining.endswith("." + item.path)]
    if deeper:
        best = max(deeper, key=lambda item: len(item.path))
        return ConfigDefinition(query=key, item=best, exact=False)
    return None


# =============================================================================
# Usages
# =============================================================================

def config_calls_in_line(line: str) -> List[Tuple[str, int, int]]:
    """(key, start, end) of every config() call on a line."""
    return [(m.group("key"), m.start("key"), m.end("key")) for m in CONFIG_CALL.finditer(line)]


def config_call_at(line: str, column: int) -> Optional[Tuple[str, int, int]]:
    """The config() key under a cursor column, or None."""
    for key, start, end in config_calls_in_line(line):
        if start <= column <= end:
            return key, start, end
    return None


def scan_file_for_references(file_path: Path, max_file_size: Optional[int] = None) -> List[ConfigReference]:
    """Keys used in one file, each listed once, in order of first use."""
    lines = read_lines(file_path, max_file_size)
    if lines is None:
        return []

    seen = set()
    references = []
    for line in lines:
        if is_comment_line(line):
            continue
        for key, _, _ in config_calls_in_line(line):
            if key not in seen:
                seen.add(key)
                references.append(ConfigReference(key=key, file=file_path))
    return references


def find_config_references_in_file(file_path: Path, key: str, max_file_size: Optional[int] = None) -> List[Location]:
    """
    Every usage of one key in one file, re-scanned from disk.

    Returns:
        A location per occurrence, each spanning the key text
    """
    lines = read_lines(file_path, max_file_size)
    if lines is None:
        return []

    pattern = _config_call_pattern(key)
    locations = []
    for i, line in enumerate(lines):
        if is_comment_line(line):
            continue
        for m in pattern.finditer(line):
            locations.append(Location(file_path, i, m.start("key"), m.end("key")))
    return locations


def find_config_references(references: List[ConfigReference], key: str) -> List[ConfigReference]:
    """Reference entries whose key equals or contains ``key``."""
    return [ref for ref in references if ref.key == key or key in ref.key]


# =============================================================================
# Parser
# =============================================================================

class ConfigParser:
    """Discovers config files and usage files for one project."""

    def __init__(
        self,
        project_dir: Path,
        layout: Optional[LayoutConfig] = None,
        exclusions: Optional[ExclusionConfig] = None,
        max_file_size: Optional[int] = None,
    ):
        self.project_dir = Path(project_dir)
        self.layout = layout or LayoutConfig()
        self.exclusions = exclusions or ExclusionConfig()
        self.max_file_size = max_file_size

    @property
    def config_dir(self) -> Path:
        return self.project_dir / self.layout.config_dir

    def discover_config_files(self) -> List[Path]:
        """PHP files directly under the config directory (not recursive)."""
        if not self.config_dir.is_dir():
            return []
        return sorted(p for p in self.config_dir.glob("*.php") if p.is_file())

    def parse_config_file(self, file_path: Path) -> List[ConfigItem]:
        lines = read_lines(file_path, self.max_file_size)
        if lines is None:
            return []
        try:
            items = parse_config_lines(lines, file_path)
        except Exception:
            logger.exception("Config file parse failed", extra={'file': str(file_path)})
            return []
        logger.debug("Config file parsed", extra={'file': str(file_path), 'items': len(items)})
        return items

    def parse_all(self) -> List[ConfigItem]:
        items: List[ConfigItem] = []
        for file_path in self.discover_config_files():
            items.extend(self.parse_config_file(file_path))
        return items

    def discover_reference_files(self, globs: Optional[Iterable[str]] = None) -> List[Path]:
        """Files matched by the reference globs, minus exclusions, each once."""
        found = set()
        for pattern in globs or self.layout.reference_globs:
            for path in self.project_dir.glob(pattern):
                if not path.is_file():
                    continue
                rel = path.relative_to(self.project_dir).as_posix()
                if self.exclusions.is_excluded(rel):
                    continue
                found.add(path)
        return sorted(found)

    def scan_config_references(self) -> List[ConfigReference]:
        references: List[ConfigReference] = []
        for file_path in self.discover_reference_files():
            references.extend(scan_file_for_references(file_path, self.max_file_size))
        logger.debug("Config references scanned", extra={'references': len(references)})
        return references
