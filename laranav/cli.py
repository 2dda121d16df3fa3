"""
CLI -- Command interface for laranav

Scans a Laravel project once per invocation and answers one question:
where is this defined, where is it used, what does the index hold.

Usage:
    laranav stats
    laranav routes --controller User
    laranav resolve routes/api.php 14 30
    laranav hover app/Console/Kernel.php 22 31
    laranav config set layout.root_namespace Shop
"""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from .config import ConfigManager
from .errors import LaranavError
from .logging import VALID_LEVELS
from .session import ProjectSession
from . import __version__


class NavigatorCLI:
    """Holds the resources commands share; the session opens on first use."""

    def __init__(self, project_dir: Path, log_level: Optional[str] = None, json_output: bool = False):
        self.project_dir = Path(project_dir).resolve()
        self.json_output = json_output
        self.config_manager = ConfigManager(self.project_dir)
        self._log_level = log_level
        self._session: Optional[ProjectSession] = None

    @property
    def session(self) -> ProjectSession:
        if self._session is None:
            config = self.config_manager.load()
            if self._log_level:
                config.logging.level = self._log_level
            session = ProjectSession(self.project_dir, config)
            session.open()
            self._session = session
        return self._session

    def close(self):
        if self._session is not None:
            self._session.close()
            self._session = None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='laranav',
        description="laranav -- Cross-reference navigation for Laravel projects",
        epilog="Routes to controllers, middleware to kernel, commands to classes, config() to config/."
    )

    parser.add_argument(
        '--project', '-p',
        default=os.environ.get("LARANAV_PROJECT_PATH", "."),
        help='Project directory (default: LARANAV_PROJECT_PATH or current)'
    )

    parser.add_argument(
        '--version', '-V',
        action='version',
        version=f'laranav {__version__}'
    )

    parser.add_argument(
        '--log-level',
        type=str.upper,
        choices=VALID_LEVELS,
        help='Diagnostic verbosity on stderr (overrides config)'
    )

    parser.add_argument(
        '--json',
        action='store_true',
        help='Machine-readable output'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    from .commands import register_all
    register_all(subparsers)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the laranav CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    from .commands import dispatch
    cli = NavigatorCLI(Path(args.project), log_level=args.log_level, json_output=args.json)

    try:
        return dispatch(args.command, cli, args) or 0
    except LaranavError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        cli.close()


if __name__ == '__main__':
    sys.exit(main())
