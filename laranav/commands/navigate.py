"""
NavigateCommand — Go-to-definition and preview from the command line

Positions on the command line are 1-based, the way editors display them;
they are converted to the 0-based positions the resolver works with.
"""

from pathlib import Path

from .base import BaseCommand
from ..core.resolver import ResolveStatus


COMMAND_NAMES = ['resolve', 'hover']


class NavigateCommand(BaseCommand):
    """Resolve the reference under a cursor position."""

    def _cursor(self, file: str, line: int, column: int):
        path = Path(file)
        if not path.is_absolute():
            # Relative to the working directory, else to --project
            from_cwd = Path.cwd() / path
            path = from_cwd if from_cwd.is_file() else self.project_dir / path
        return path, max(line - 1, 0), max(column - 1, 0)

    def resolve(self, file: str, line: int, column: int):
        """
        Print navigation targets.

        Args:
            file: Source file, absolute or relative to the working directory
                or the project root
            line: 1-based line
            column: 1-based column
        """
        path, line0, col0 = self._cursor(file, line, column)
        result = self.session.resolve(path, line0, col0)

        if self.json_output:
            self.emit_json(result.to_dict())
            return

        if result.status == ResolveStatus.NOT_FOUND:
            print("No target found.")
            for suggestion in result.suggestions:
                print(f"  Did you mean class {suggestion}?")
            return

        if result.status == ResolveStatus.AMBIGUOUS:
            print(f"{len(result.locations)} candidates for {result.query}:")
        for location in result.locations:
            print(f"{self.relative(location.file)}:{location.line + 1}:{location.start + 1}")

    def hover(self, file: str, line: int, column: int):
        """Print the definition line for the reference under the cursor."""
        path, line0, col0 = self._cursor(file, line, column)
        preview = self.session.hover(path, line0, col0)

        if self.json_output:
            self.emit_json({'preview': preview})
            return
        print(preview if preview is not None else "No preview.")


def register_parser(subparsers):
    """Register resolve and hover command parsers."""
    parsers = []
    for name, help_text in (('resolve', 'Show where the reference at a position is defined or used'),
                            ('hover', 'Show the definition line for the reference at a position')):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument('file', help='Source file')
        p.add_argument('line', type=int, help='Line (1-based)')
        p.add_argument('column', type=int, help='Column (1-based)')
        parsers.append(p)
    return parsers


def handle(cli, args):
    """Handle resolve or hover command dispatch."""
    command = NavigateCommand(cli)
    if args.command == 'resolve':
        command.resolve(args.file, args.line, args.column)
    else:
        command.hover(args.file, args.line, args.column)
