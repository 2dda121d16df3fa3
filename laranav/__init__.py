"""
laranav — Cross-reference navigation for Laravel projects

Indexes a project with bounded line scanning (no PHP grammar) and answers
"where is this defined / used" for routes, controllers, middleware aliases,
console commands and config keys.

Usage:
    laranav stats
    laranav resolve routes/api.php 14 30

    from laranav import ProjectSession
    with ProjectSession("/srv/shop") as session:
        session.resolve("routes/api.php", line=13, column=29)
"""

import logging

__version__ = "0.1.0"

# Silent unless the host (or configure_logging) attaches a sink
logging.getLogger(__name__).addHandler(logging.NullHandler())

from .errors import LaranavError, ProjectLayoutError, ConfigError
from .config import Config, ConfigManager, get_config
from .logging import configure_logging
from .core.models import Location, Route, IndexSnapshot, IndexStats
from .core.index import ProjectIndex
from .core.resolver import Resolver, ResolveStatus, ResolveResult, EntityKind
from .core.watch import RebuildScheduler, WatchRouter
from .session import ProjectSession

__all__ = [
    # Errors
    'LaranavError', 'ProjectLayoutError', 'ConfigError',
    # Config
    'Config', 'ConfigManager', 'get_config', 'configure_logging',
    # Core
    'Location', 'Route', 'IndexSnapshot', 'IndexStats',
    'ProjectIndex',
    'Resolver', 'ResolveStatus', 'ResolveResult', 'EntityKind',
    'RebuildScheduler', 'WatchRouter',
    'ProjectSession',
]
