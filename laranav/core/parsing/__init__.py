"""
Parsing module — Line-oriented scanners for a Laravel project.

Each parser reads files through ``text.read_lines`` and turns them into the
immutable records of ``laranav.core.models``:

- RouteParser: routes files -> Route (namespace resolved per line)
- MiddlewareParser / KernelParser: usages in routes, aliases in the kernel
- CommandParser: schedule registrations and command classes
- ConfigParser: config declarations and config() usages
- FileClassifier: path -> FileKind, for resolver dispatch

Design principle: bounded textual heuristics (lookahead limits, depth
counters, indentation checks), never a PHP grammar.

Usage:
    from laranav.core.parsing import RouteParser, FileClassifier

    routes = RouteParser(root_namespace="App").parse_file(path)
"""

from .registry import FileKind, FileClassifier, ClassifierRule
from .exclusions import ExclusionConfig
from .routes import RouteParser, route_target_at, build_namespace
from .middleware import MiddlewareParser, KernelParser, middleware_at, find_middleware_definition
from .commands import (
    CommandParser, command_at, parse_command_signature,
    find_command_definition, find_schedule_by_class_name,
)
from .config_keys import (
    ConfigParser, config_call_at, config_key_at,
    find_config_definition, find_config_references, find_config_references_in_file,
)

__all__ = [
    'FileKind', 'FileClassifier', 'ClassifierRule',
    'ExclusionConfig',
    'RouteParser', 'route_target_at', 'build_namespace',
    'MiddlewareParser', 'KernelParser', 'middleware_at', 'find_middleware_definition',
    'CommandParser', 'command_at', 'parse_command_signature',
    'find_command_definition', 'find_schedule_by_class_name',
    'ConfigParser', 'config_call_at', 'config_key_at',
    'find_config_definition', 'find_config_references', 'find_config_references_in_file',
]
