"""
Text primitives shared by every line scanner.

All parsers read through ``read_lines`` so a missing, unreadable or
oversized file behaves the same everywhere: it contributes nothing.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

QUOTES = "'\"`"

COMMENT_PREFIXES = ("//", "#", "/*", "*")


def read_lines(path: Path, max_size: Optional[int] = None) -> Optional[List[str]]:
    """
    Read a source file as a list of lines.

    Args:
        path: File to read
        max_size: Skip the file when it is larger than this many bytes

    Returns:
        Lines without their terminators, or None when the file cannot be used
    """
    try:
        if max_size is not None and path.stat().st_size > max_size:
            logger.info("Skipping oversized file", extra={'file': str(path)})
            return None
        text = path.read_text(encoding='utf-8', errors='ignore')
    except OSError as e:
        logger.warning("Cannot read file", extra={'file': str(path), 'error': str(e)})
        return None

    return [line.rstrip('\r') for line in text.split('\n')]


def indent_of(line: str) -> int:
    """Width of the leading whitespace."""
    return len(line) - len(line.lstrip())


def is_comment_line(line: str, prefixes=COMMENT_PREFIXES) -> bool:
    return line.lstrip().startswith(prefixes)


def trimmed_span(line: str) -> Tuple[int, int]:
    """(first non-blank column, end of content) for whole-line targets."""
    stripped = line.strip()
    if not stripped:
        return 0, 0
    start = indent_of(line)
    return start, start + len(stripped)


def split_quoted_list(text: str, offset: int = 0) -> List[Tuple[str, int]]:
    """
    Split a comma-separated list without breaking inside quotes.

    ``'auth', 'throttle:60,1'`` yields two items; the comma inside the
    second quoted string is kept.

    Args:
        text: List body (the part between the brackets or parentheses)
        offset: Column of ``text[0]`` on the source line

    Returns:
        (item text, column of its first character) pairs, surrounding
        whitespace trimmed, empty items dropped
    """
    items: List[Tuple[str, int]] = []
    quote = None
    start = 0

    def flush(end: int):
        raw = text[start:end]
        stripped = raw.strip()
        if stripped:
            items.append((stripped, offset + start + (len(raw) - len(raw.lstrip()))))

    for i, ch in enumerate(text):
        if quote:
            if ch == quote and text[i - 1] != '\\':
                quote = None
        elif ch in QUOTES:
            quote = ch
        elif ch == ',':
            flush(i)
            start = i + 1

    flush(len(text))
    return items


def unquote(item: str, column: int) -> Optional[Tuple[str, int]]:
    """
    Strip one pair of matching quotes.

    Returns:
        (inner text, column of its first character), or None when the item
        is not a quoted string literal
    """
    if len(item) >= 2 and item[0] in QUOTES and item[-1] == item[0]:
        return item[1:-1], column + 1
    return None


def bracket_delta(line: str) -> int:
    """Net ``[`` minus ``]`` count outside string literals and trailing comments."""
    depth = 0
    quote = None
    for i, ch in enumerate(line):
        if quote:
            if ch == quote and line[i - 1] != '\\':
                quote = None
            continue
        if ch in "'\"":
            quote = ch
        elif ch == '/' and line[i + 1:i + 2] == '/':
            break
        elif ch == '[':
            depth += 1
        elif ch == ']':
            depth -= 1
    return depth


def find_array_end(lines: List[str], open_line: int, end: Optional[int] = None) -> Optional[int]:
    """
    Find the line holding the bracket that closes the array opened on ``open_line``.

    A running depth counter over the lines, not a parser. Brackets inside
    quoted strings and ``//`` comments are ignored.

    Args:
        lines: File lines
        open_line: Line whose net bracket count opens the array
        end: Exclusive upper bound of the search

    Returns:
        Index of the closing line, or None when the array never closes
    """
    end = len(lines) if end is None else end
    depth = bracket_delta(lines[open_line])
    if depth <= 0:
        return None

    for i in range(open_line + 1, end):
        depth += bracket_delta(lines[i])
        if depth <= 0:
            return i
    return None
