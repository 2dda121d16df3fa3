"""
Configuration — Centralized settings management

Config hierarchy (highest to lowest priority):
  1. Project config (<project>/.laranav/config.yaml)
  2. User config (~/.laranav/config.yaml)
  3. Environment variables
  4. Defaults

The defaults describe a stock Laravel layout; projects with a different
root namespace or extra controller directories override them in YAML.
"""

import os
import yaml
from pathlib import Path
from dataclasses import dataclass, field, fields
from typing import Optional, Dict, Any, List

from .errors import ConfigError
from .logging import VALID_LEVELS


DEFAULT_CONTROLLER_ROOTS = [
    "app/Http/Controllers",
    "app/Api/Controllers",
    "app/Controllers",
]

DEFAULT_REFERENCE_GLOBS = [
    "app/**/*.php",
    "routes/**/*.php",
    "database/**/*.php",
]


@dataclass
class LayoutConfig:
    """Where the framework keeps each kind of file, relative to the project root."""
    root_namespace: str = "App"
    root_namespace_dir: str = "app"   # Directory the root namespace maps to (PSR-4)
    routes_dir: str = "routes"
    http_kernel: str = "app/Http/Kernel.php"
    console_kernel: str = "app/Console/Kernel.php"
    commands_dir: str = "app/Console/Commands"
    config_dir: str = "config"
    controller_roots: List[str] = field(default_factory=lambda: list(DEFAULT_CONTROLLER_ROOTS))
    reference_globs: List[str] = field(default_factory=lambda: list(DEFAULT_REFERENCE_GLOBS))

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        if not self.root_namespace or "\\" in self.root_namespace:
            return f"Invalid root namespace '{self.root_namespace}'. Use a single segment (e.g. App)"
        if not self.controller_roots:
            return "At least one controller root is required"
        return None


@dataclass
class ScanConfig:
    """Bounds for the line scanners."""
    group_lookahead: int = 15          # Lines searched for a group's namespace
    namespace_tolerance: int = 5       # Max line distance for route namespace lookup
    max_file_size: int = 1_000_000     # Skip files larger than this (bytes)
    exclude: List[str] = field(default_factory=list)

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        if self.group_lookahead < 1:
            return "scan.group_lookahead must be >= 1"
        if self.namespace_tolerance < 0:
            return "scan.namespace_tolerance must be >= 0"
        if self.max_file_size < 1:
            return "scan.max_file_size must be >= 1"
        return None


@dataclass
class LoggingConfig:
    """Diagnostic output preferences."""
    level: str = "WARNING"
    json: bool = False
    file: Optional[str] = None

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        if self.level.upper() not in VALID_LEVELS:
            return f"Unknown log level '{self.level}'. Valid: {', '.join(VALID_LEVELS)}"
        return None


@dataclass
class WatchConfig:
    """Rebuild coalescing."""
    debounce_seconds: float = 0.3

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        if self.debounce_seconds < 0:
            return "watch.debounce_seconds must be >= 0"
        return None


SECTIONS = {
    "layout": LayoutConfig,
    "scan": ScanConfig,
    "logging": LoggingConfig,
    "watch": WatchConfig,
}


@dataclass
class Config:
    """Application configuration."""
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)

    def validate(self) -> Optional[str]:
        """First validation error across all sections, or None."""
        for name in SECTIONS:
            error = getattr(self, name).validate()
            if error:
                return error
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            name: {f.name: _copy_value(getattr(getattr(self, name), f.name))
                   for f in fields(section_cls)}
            for name, section_cls in SECTIONS.items()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """
        Create from dictionary. Unknown keys are ignored.

        Raises:
            ConfigError: If a section is not a mapping or a value has the wrong type
        """
        sections = {}
        for name, section_cls in SECTIONS.items():
            section_data = data.get(name) or {}
            if not isinstance(section_data, dict):
                raise ConfigError(f"Invalid section '{name}': expected a mapping, got {type(section_data).__name__}")

            defaults = section_cls()
            values = {}
            for f in fields(section_cls):
                if f.name in section_data:
                    value = section_data[f.name]
                    if not _matches_type(getattr(defaults, f.name), value):
                        raise ConfigError(f"Invalid value for {name}.{f.name}: {value!r}")
                    values[f.name] = value
            sections[name] = section_cls(**values)
        return cls(**sections)


def _matches_type(default: Any, value: Any) -> bool:
    """Whether a loaded value can stand in for a setting's default."""
    if default is None:
        return value is None or isinstance(value, str)
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, (int, float)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        return isinstance(default, float) or isinstance(value, int)
    if isinstance(default, list):
        return isinstance(value, list) and all(isinstance(item, str) for item in value)
    return isinstance(value, type(default))


def _copy_value(value: Any) -> Any:
    return list(value) if isinstance(value, list) else value


def _coerce(current: Any, value: str) -> Any:
    """Convert a string from the command line to the type of the current value."""
    if isinstance(current, bool):
        return value.lower() in ('true', '1', 'yes', 'on')
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    if isinstance(current, list):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


class ConfigManager:
    """
    Manages configuration loading and persistence.

    Hierarchy:
      1. Project config (.laranav/config.yaml)
      2. User config (~/.laranav/config.yaml)
      3. Environment
      4. Defaults
    """

    USER_CONFIG_DIR = Path.home() / ".laranav"
    USER_CONFIG_FILE = USER_CONFIG_DIR / "config.yaml"
    PROJECT_CONFIG_DIR = ".laranav"
    PROJECT_CONFIG_FILE = "config.yaml"

    def __init__(self, project_dir: Optional[Path] = None):
        self.project_dir = Path(project_dir) if project_dir else Path.cwd()
        self._config: Optional[Config] = None

    @property
    def project_config_path(self) -> Path:
        return self.project_dir / self.PROJECT_CONFIG_DIR / self.PROJECT_CONFIG_FILE

    @property
    def user_config_path(self) -> Path:
        return self.USER_CONFIG_FILE

    def load(self) -> Config:
        """
        Load configuration from all sources.

        Raises:
            ConfigError: If the merged configuration fails validation
        """
        if self._config is not None:
            return self._config

        config_data: Dict[str, Any] = {}

        # Layer 1: Environment (lowest of the explicit sources)
        if os.environ.get("LARANAV_ROOT_NAMESPACE"):
            config_data.setdefault("layout", {})["root_namespace"] = os.environ["LARANAV_ROOT_NAMESPACE"]
        if os.environ.get("LARANAV_LOG_LEVEL"):
            config_data.setdefault("logging", {})["level"] = os.environ["LARANAV_LOG_LEVEL"]
        if os.environ.get("LARANAV_LOG_JSON"):
            config_data.setdefault("logging", {})["json"] = _coerce(False, os.environ["LARANAV_LOG_JSON"])

        # Layer 2: User config
        config_data = self._merge(config_data, self._read_yaml(self.user_config_path))

        # Layer 3: Project config (higher priority)
        config_data = self._merge(config_data, self._read_yaml(self.project_config_path))

        config = Config.from_dict(config_data)
        error = config.validate()
        if error:
            raise ConfigError(error)

        self._config = config
        return self._config

    def _read_yaml(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError):
            return {}  # Ignore malformed config
        return data if isinstance(data, dict) else {}

    def save_project(self, config: Config):
        """Save configuration to project config file."""
        self.project_config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.project_config_path, 'w') as f:
            yaml.safe_dump(config.to_dict(), f, default_flow_style=False)

        self._config = config

    def save_user(self, config: Config):
        """Save configuration to user config file."""
        self.USER_CONFIG_DIR.mkdir(parents=True, exist_ok=True)

        with open(self.user_config_path, 'w') as f:
            yaml.safe_dump(config.to_dict(), f, default_flow_style=False)

        self._config = config

    def set(self, key: str, value: str, scope: str = "project") -> Optional[str]:
        """
        Set a configuration value.

        Args:
            key: Dot-separated key (e.g., "layout.root_namespace")
            value: Value to set (lists are comma-separated)
            scope: "project" or "user"

        Returns:
            Error message or None if successful
        """
        config = self.load()

        parts = key.split(".")
        if len(parts) != 2:
            return f"Invalid key format: {key}. Use 'section.setting' (e.g., 'layout.root_namespace')"

        section_name, setting = parts
        if section_name not in SECTIONS:
            return f"Unknown section: {section_name}. Valid: {', '.join(SECTIONS)}"

        section = getattr(config, section_name)
        valid = [f.name for f in fields(section)]
        if setting not in valid:
            return f"Unknown {section_name} setting: {setting}. Valid: {', '.join(valid)}"

        previous = getattr(section, setting)
        try:
            setattr(section, setting, _coerce(previous, value))
        except ValueError:
            return f"Invalid value for {key}: {value}"

        error = section.validate()
        if error:
            setattr(section, setting, previous)
            return error

        if scope == "project":
            self.save_project(config)
        else:
            self.save_user(config)

        return None

    def get(self, key: str) -> Optional[str]:
        """Get a configuration value as display text."""
        config = self.load()

        parts = key.split(".")
        if len(parts) != 2 or parts[0] not in SECTIONS:
            return None

        section = getattr(config, parts[0])
        if not hasattr(section, parts[1]):
            return None

        value = getattr(section, parts[1])
        if isinstance(value, bool):
            return str(value).lower()
        if isinstance(value, list):
            return ", ".join(value)
        return None if value is None else str(value)

    def _merge(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dicts, override wins."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge(result[key], value)
            else:
                result[key] = value
        return result

    def display(self) -> str:
        """Format config for display."""
        config = self.load()
        lines = ["Configuration:"]

        for name, values in config.to_dict().items():
            lines.append("")
            lines.append(f"{name.capitalize()}:")
            for setting, value in values.items():
                if isinstance(value, list):
                    value = ", ".join(value) or "(none)"
                lines.append(f"  {setting}: {value}")

        lines.extend([
            "",
            "Config files:",
            f"  User: {self.user_config_path}",
            f"  Project: {self.project_config_path}",
        ])

        return "\n".join(lines)


# Convenience function
def get_config(project_dir: Optional[Path] = None) -> Config:
    """Load configuration for a project."""
    return ConfigManager(project_dir).load()
