"""
Command Parser — Scheduled commands and command classes.

Two sources:

- The console kernel's schedule method, scanned from its opening line to
  the first bare ``}`` at the method's own indentation (not brace matching).
  Inside it, ``$schedule->command('sync:data --force')`` and
  ``Schedule::command(...)`` register commands by signature.
- The commands directory, where a class extending Command and a
  ``$signature`` property in the same file define one command. The command
  name is the first whitespace token of the signature.

Usage:
    parser = CommandParser(project_dir, config.layout)
    scheduled = parser.parse_console_kernel()
    definitions = parser.discover_command_classes()
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ...config import LayoutConfig
from ..models import CommandDefinition, ScheduledCommand
from .text import read_lines, indent_of

logger = logging.getLogger(__name__)


SCHEDULE_COMMAND = re.compile(
    r"(?:\$schedule\s*->|Schedule\s*::)\s*command\s*\(\s*['\"`](?P<signature>[^'\"`]+)['\"`]"
)
COMMAND_CLASS = re.compile(
    r"^(?:(?:final|abstract)\s+)*class\s+(?P<name>\w+)\s+extends\s+\\?(?:[\w\\]+\\)?Command\b"
)
# The closing quote may sit on a later line for multi-line signatures
SIGNATURE = re.compile(
    r"(?:protected|public)\s+\$signature\s*=\s*['\"`](?P<signature>[^'\"`]+)(?:['\"`]|$)"
)


def command_name(signature: str) -> str:
    """``sync:data {--force}`` gives ``sync:data``."""
    parts = signature.split()
    return parts[0] if parts else signature


def _is_schedule_start(trimmed: str) -> bool:
    return "function schedule(" in trimmed or "schedule(Schedule" in trimmed


def commands_in_line(line: str, line_no: int = 0, file_path: Path = Path()) -> List[ScheduledCommand]:
    """Every command registration on one line. The span covers the command name."""
    commands = []
    for m in SCHEDULE_COMMAND.finditer(line):
        signature = m.group("signature")
        name = command_name(signature)
        start = m.start("signature") + (len(signature) - len(signature.lstrip()))
        commands.append(ScheduledCommand(
            name=name,
            signature=signature,
            file=file_path,
            line=line_no,
            start=start,
            end=start + len(name),
        ))
    return commands


def command_at(line: str, column: int, line_no: int = 0, file_path: Path = Path()) -> Optional[ScheduledCommand]:
    """The command name under a cursor column, or None."""
    for command in commands_in_line(line, line_no, file_path):
        if command.start <= column <= command.end:
            return command
    return None


def parse_schedule_lines(lines: List[str], file_path: Path) -> List[ScheduledCommand]:
    commands: List[ScheduledCommand] = []
    method_indent = None

    for i, line in enumerate(lines):
        trimmed = line.strip()
        if method_indent is None:
            if _is_schedule_start(trimmed):
                method_indent = indent_of(line)
            continue

        if trimmed.startswith("}") and ">" not in trimmed and indent_of(line) <= method_indent:
            break

        commands.extend(commands_in_line(line, i, file_path))

    return commands


def parse_command_class(file_path: Path, max_file_size: Optional[int] = None) -> Optional[CommandDefinition]:
    """
    Read one command class file.

    Returns:
        The definition, or None unless both the class declaration and the
        signature property are found in the file
    """
    lines = read_lines(file_path, max_file_size)
    if lines is None:
        return None

    class_name, class_line = None, -1
    signature, signature_line = None, -1

    for i, line in enumerate(lines):
        trimmed = line.strip()
        if class_name is None:
            m = COMMAND_CLASS.match(trimmed)
            if m:
                class_name, class_line = m.group("name"), i
        if signature is None:
            m = SIGNATURE.search(trimmed)
            if m and m.group("signature").strip():
                signature, signature_line = m.group("signature"), i
        if class_name and signature:
            break

    if not (class_name and signature):
        logger.info("Command class skipped", extra={
            'file': str(file_path),
            'has_class': class_name is not None,
            'has_signature': signature is not None,
        })
        return None

    return CommandDefinition(
        name=command_name(signature),
        class_name=class_name,
        file=file_path,
        class_line=class_line,
        signature_line=signature_line,
    )


def parse_command_signature(file_path: Path, max_file_size: Optional[int] = None) -> Optional[Tuple[str, int]]:
    """
    Command name declared by any class file, whatever it extends.

    Returns:
        (command name, signature line), or None
    """
    lines = read_lines(file_path, max_file_size)
    if lines is None:
        return None

    for i, line in enumerate(lines):
        m = SIGNATURE.search(line.strip())
        if m and m.group("signature").strip():
            return command_name(m.group("signature")), i
    return None


class CommandParser:
    """Scheduled commands from the console kernel, definitions from the commands tree."""

    def __init__(self, project_dir: Path, layout: Optional[LayoutConfig] = None,
                 max_file_size: Optional[int] = None):
        self.project_dir = Path(project_dir)
        self.layout = layout or LayoutConfig()
        self.max_file_size = max_file_size

    @property
    def console_kernel_path(self) -> Path:
        return self.project_dir / self.layout.console_kernel

    @property
    def commands_dir(self) -> Path:
        return self.project_dir / self.layout.commands_dir

    def parse_schedule_file(self, file_path: Path) -> List[ScheduledCommand]:
        """Scheduled commands in one kernel file; empty when unreadable."""
        lines = read_lines(file_path, self.max_file_size)
        if lines is None:
            return []
        commands = parse_schedule_lines(lines, file_path)
        logger.debug("Schedule parsed", extra={'file': str(file_path), 'commands': len(commands)})
        return commands

    def parse_console_kernel(self) -> List[ScheduledCommand]:
        if not self.console_kernel_path.is_file():
            logger.info("No console kernel", extra={'file': str(self.console_kernel_path)})
            return []
        return self.parse_schedule_file(self.console_kernel_path)

    def discover_command_files(self) -> List[Path]:
        """PHP files under the commands directory, sorted for a stable scan order."""
        if not self.commands_dir.is_dir():
            return []
        return sorted(p for p in self.commands_dir.rglob("*.php") if p.is_file())

    def discover_command_classes(self) -> Dict[str, CommandDefinition]:
        """
        Map command name -> definition.

        Files are visited in sorted path order; when two classes declare the
        same command name, the later file overwrites the earlier one.
        """
        definitions: Dict[str, CommandDefinition] = {}
        for file_path in self.discover_command_files():
            definition = parse_command_class(file_path, self.max_file_size)
            if definition is None:
                continue
            previous = definitions.get(definition.name)
            if previous is not None:
                logger.warning("Command name declared twice, keeping the later file", extra={
                    'command': definition.name,
                    'previous': str(previous.file),
                    'current': str(file_path),
                })
            definitions[definition.name] = definition

        logger.debug("Command classes discovered", extra={'commands': len(definitions)})
        return definitions


def find_command_definition(definitions: Dict[str, CommandDefinition], name: str) -> Optional[CommandDefinition]:
    """Exact lookup by command name. No prefix or suffix matching."""
    return definitions.get(name)


def find_schedule_by_class_name(
    definitions: Dict[str, CommandDefinition],
    scheduled: List[ScheduledCommand],
    class_name: str,
) -> List[ScheduledCommand]:
    """Schedule entries registering the command that ``class_name`` defines."""
    names = {d.name for d in definitions.values() if d.class_name == class_name}
    return [cmd for cmd in scheduled if cmd.name in names]
