"""
Exclusion patterns for project walks.

Each session owns its own ExclusionConfig, so two projects opened in one
process never share state.

Usage:
    from laranav.core.parsing.exclusions import ExclusionConfig

    exclusions = ExclusionConfig(extra=['**/legacy/**'])
    exclusions.is_excluded('vendor/laravel/framework/src/Route.php')   # True
"""

from fnmatch import fnmatch
from pathlib import PurePosixPath
from typing import Iterable, List, Optional


class ExclusionConfig:
    """
    Glob patterns matched against root-relative POSIX paths.

    ``**/x/**`` also matches a path that starts with ``x/``, so the same
    pattern covers top-level and nested directories.
    """

    # =========================================================================
    # Default Patterns
    # =========================================================================

    DEFAULT_PATTERNS: List[str] = [
        # Dependencies
        '**/vendor/**',
        '**/node_modules/**',

        # Framework runtime output
        '**/storage/**',

        # Version control
        '**/.git/**',
    ]

    def __init__(self, extra: Optional[Iterable[str]] = None):
        self._patterns: List[str] = list(self.DEFAULT_PATTERNS)
        for pattern in extra or []:
            self.add(pattern)

    # =========================================================================
    # Query Methods
    # =========================================================================

    @property
    def patterns(self) -> List[str]:
        return list(self._patterns)

    def is_excluded(self, rel_path: str) -> bool:
        """Check whether a root-relative path falls under any pattern."""
        rel = str(PurePosixPath(rel_path)).lstrip('/')
        candidates = (rel, '/' + rel)
        for pattern in self._patterns:
            if any(fnmatch(c, pattern) for c in candidates):
                return True
            if pattern.startswith('**/') and fnmatch(rel, pattern[3:]):
                return True
        return False

    # =========================================================================
    # Modification Methods
    # =========================================================================

    def add(self, pattern: str) -> None:
        """Add a pattern. Duplicates are ignored."""
        if pattern not in self._patterns:
            self._patterns.append(pattern)

    def remove(self, pattern: str) -> bool:
        """Remove a pattern. Returns True if removed."""
        if pattern in self._patterns:
            self._patterns.remove(pattern)
            return True
        return False
