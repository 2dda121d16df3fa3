"""
ConfigCommand — View and change settings

Reads and writes .laranav/config.yaml (or the user config with --user).
Never scans the project.
"""

import sys
from typing import Optional

from .base import BaseCommand


class ConfigCommand(BaseCommand):
    """Configuration display and modification."""

    def show_config(self):
        if self.json_output:
            self.emit_json(self.config_manager.load().to_dict())
            return
        print(self.config_manager.display())

    def get_config(self, key: str) -> bool:
        value = self.config_manager.get(key)
        if value is None:
            print(f"Unknown setting: {key}", file=sys.stderr)
            return False
        print(value)
        return True

    def set_config(self, key: str, value: str, scope: str = "project") -> bool:
        error = self.config_manager.set(key, value, scope)
        if error:
            print(f"Error: {error}", file=sys.stderr)
            return False
        print(f"Set {key} = {value} ({scope})")
        return True


def register_parser(subparsers):
    """Register config command parser."""
    p = subparsers.add_parser('config', help='View or set configuration')
    p.add_argument('action', nargs='?', choices=['get', 'set'],
                   help='Omit to show the whole configuration')
    p.add_argument('key', nargs='?', help='Setting, e.g. layout.root_namespace')
    p.add_argument('value', nargs='?', help='New value (lists are comma-separated)')
    p.add_argument('--user', action='store_true',
                   help='Apply to user config instead of project')
    return p


def handle(cli, args) -> Optional[int]:
    """Handle config command dispatch."""
    command = ConfigCommand(cli)
    if args.action is None:
        command.show_config()
        return 0

    if not args.key or (args.action == 'set' and args.value is None):
        print("Usage: laranav config get KEY | laranav config set KEY VALUE", file=sys.stderr)
        return 2

    if args.action == 'get':
        ok = command.get_config(args.key)
    else:
        ok = command.set_config(args.key, args.value, "user" if args.user else "project")
    return 0 if ok else 1
