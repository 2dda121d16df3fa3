"""
File Classifier — Routes a source file to the handler that understands it.

Classification is by path only, relative to the project root, and checked
in a fixed order so that a file matching several rules gets the first one:

    routes dir > "Controller" in path > commands dir > console kernel > config dir

Usage:
    classifier = FileClassifier.from_layout(project_dir, config.layout)
    classifier.classify(Path("routes/api.php"))
    # Returns FileKind.ROUTE
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional

from ...config import LayoutConfig


class FileKind(Enum):
    """What a PHP file is, as far as navigation is concerned."""
    ROUTE = "route"
    CONTROLLER = "controller"
    COMMAND = "command"
    CONSOLE_KERNEL = "console_kernel"
    CONFIG = "config"
    OTHER = "other"


@dataclass(frozen=True)
class ClassifierRule:
    """
    One classification rule.

    Attributes:
        name: Unique rule name (used for unregister and diagnostics)
        kind: FileKind assigned when the rule matches
        matches: Predicate over the root-relative POSIX path, with a leading "/"
    """
    name: str
    kind: FileKind
    matches: Callable[[str], bool]


def _under(directory: str) -> Callable[[str], bool]:
    prefix = "/" + directory.strip("/") + "/"
    return lambda rel: rel.startswith(prefix)


def _exactly(file_path: str) -> Callable[[str], bool]:
    target = "/" + file_path.strip("/")
    return lambda rel: rel == target


class FileClassifier:
    """
    Ordered registry of classification rules.

    Rules are evaluated in registration order; the first match wins.
    Only ``.php`` files are classified, everything else is OTHER.
    """

    def __init__(self, project_dir: Path):
        self.project_dir = Path(project_dir).resolve()
        self._rules: List[ClassifierRule] = []

    @classmethod
    def from_layout(cls, project_dir: Path, layout: LayoutConfig) -> 'FileClassifier':
        """Build the standard rule set for a project layout."""
        classifier = cls(project_dir)
        classifier.register(ClassifierRule("routes", FileKind.ROUTE, _under(layout.routes_dir)))
        classifier.register(ClassifierRule("controllers", FileKind.CONTROLLER, lambda rel: "Controller" in rel))
        classifier.register(ClassifierRule("commands", FileKind.COMMAND, _under(layout.commands_dir)))
        classifier.register(ClassifierRule("console_kernel", FileKind.CONSOLE_KERNEL, _exactly(layout.console_kernel)))
        classifier.register(ClassifierRule("config", FileKind.CONFIG, _under(layout.config_dir)))
        return classifier

    def register(self, rule: ClassifierRule) -> None:
        """
        Append a rule.

        Raises:
            ValueError: If a rule with the same name is already registered
        """
        if rule.name in self:
            raise ValueError(f"Rule {rule.name} already registered")
        self._rules.append(rule)

    def unregister(self, name: str) -> bool:
        """
        Remove a rule by name.

        Returns:
            True if removed, False if not found
        """
        for i, rule in enumerate(self._rules):
            if rule.name == name:
                del self._rules[i]
                return True
        return False

    def relative(self, file_path: Path) -> Optional[str]:
        """Root-relative POSIX path with a leading "/", or None if outside the project."""
        path = Path(file_path)
        if not path.is_absolute():
            path = self.project_dir / path
        try:
            rel = path.resolve().relative_to(self.project_dir)
        except ValueError:
            return None
        return "/" + str(PurePosixPath(rel))

    def classify(self, file_path: Path) -> FileKind:
        """
        Classify a file.

        Args:
            file_path: Absolute path, or a path relative to the project root

        Returns:
            The kind of the first matching rule, OTHER if none match
        """
        if Path(file_path).suffix.lower() != ".php":
            return FileKind.OTHER

        rel = self.relative(file_path)
        if rel is None:
            return FileKind.OTHER

        for rule in self._rules:
            if rule.matches(rel):
                return rule.kind
        return FileKind.OTHER

    def rule_names(self) -> List[str]:
        return [rule.name for rule in self._rules]

    def __len__(self) -> int:
        """Return number of registered rules."""
        return len(self._rules)

    def __contains__(self, name: str) -> bool:
        """Check if a rule name is registered."""
        return any(rule.name == name for rule in self._rules)
