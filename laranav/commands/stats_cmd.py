"""
StatsCommand — Index statistics

Runs a full scan and reports what each parser found.
"""

from .base import BaseCommand


class StatsCommand(BaseCommand):
    """Scan the project and show index counts."""

    def stats(self):
        stats = self.session.stats()
        if self.json_output:
            self.emit_json(stats.to_dict())
            return
        print(f"Project: {self.project_dir}\n")
        print(stats.format())


def register_parser(subparsers):
    """Register stats command parser."""
    p = subparsers.add_parser(
        'stats',
        help='Scan the project and show index statistics',
    )
    return p


def handle(cli, args):
    """Handle stats command dispatch."""
    StatsCommand(cli).stats()
