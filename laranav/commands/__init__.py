"""
Commands — Subcommands of the laranav CLI

A command module pairs its argparse setup with its handler:

    register_parser(subparsers)   adds the subcommand(s)
    handle(cli, args)             runs them against a NavigatorCLI

Modules serving more than one subcommand list them in COMMAND_NAMES;
otherwise the subcommand is the module name without its "_cmd" suffix.

Usage:
    register_all(parser.add_subparsers(dest='command'))
    dispatch(args.command, cli, args)
"""

import importlib
from typing import Any, Callable, Dict, List

from .base import BaseCommand

# Help lists subcommands in this order: index inspection, navigation, settings
COMMAND_MODULES = [
    'stats_cmd',
    'navigate',
    'routes_cmd',
    'config_cmd',
]

_handlers: Dict[str, Callable] = {}


def _subcommand_names(module_name: str, module) -> List[str]:
    default = module_name[:-len('_cmd')] if module_name.endswith('_cmd') else module_name
    return list(getattr(module, 'COMMAND_NAMES', [default]))


def register_all(subparsers) -> None:
    """Add every subcommand to ``subparsers`` and remember its handler."""
    _handlers.clear()

    for module_name in COMMAND_MODULES:
        module = importlib.import_module(f'.{module_name}', __package__)
        module.register_parser(subparsers)
        for name in _subcommand_names(module_name, module):
            _handlers[name] = module.handle


def dispatch(command: str, cli: Any, args: Any) -> Any:
    """
    Run the handler registered for ``command``.

    Returns:
        The handler's exit code, or None for success

    Raises:
        KeyError: If register_all() did not register the command
    """
    handler = _handlers.get(command)
    if handler is None:
        raise KeyError(f"Unknown command: {command}. Available: {', '.join(_handlers)}")
    return handler(cli, args)


def get_registered_commands() -> List[str]:
    return list(_handlers)


__all__ = ['BaseCommand', 'register_all', 'dispatch', 'get_registered_commands']
