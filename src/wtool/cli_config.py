"""
Configuration management for wtool.

Settings come from built-in defaults, an optional config file (JSON, YAML or
TOML) and WTOOL_* environment variables, in that order of precedence.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml
import yaml
from rich.console import Console

from . import __version__

console = Console(stderr=True)


@dataclass
class GitConfig:
    """git client settings."""

    command: str = "git"
    default_ref: str = "HEAD"


@dataclass
class NetworkConfig:
    """Settings for go-get style import path discovery."""

    user_agent: str = f"wtool/{__version__}"
    connect_timeout: float = 10.0
    read_timeout: float = 30.0


@dataclass
class WorkspaceConfig:
    """WORKSPACE file settings."""

    file_name: str = "WORKSPACE"
    rule_name: str = "new_go_repository"


@dataclass
class LoggingConfig:
    """Logging and error handling configuration."""

    log_level: str = "WARNING"
    enable_sensitive_data_masking: bool = True


@dataclass
class ComprehensiveConfig:
    """Main configuration containing all subsections."""

    git: GitConfig = field(default_factory=GitConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Global configuration instance
_global_config: Optional[ComprehensiveConfig] = None

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_config_values(config: ComprehensiveConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []

    if not config.git.command:
        errors.append("git.command must not be empty")
    if not config.git.default_ref:
        errors.append("git.default_ref must not be empty")

    if config.network.connect_timeout <= 0:
        errors.append("network.connect_timeout must be positive")
    if config.network.read_timeout <= 0:
        errors.append("network.read_timeout must be positive")

    if not config.workspace.file_name or "/" in config.workspace.file_name:
        errors.append("workspace.file_name must be a plain file name")
    if not config.workspace.rule_name.isidentifier():
        errors.append("workspace.rule_name must be a valid identifier")

    if config.logging.log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(f"logging.log_level must be one of {sorted(VALID_LOG_LEVELS)}")

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from file."""
    if not config_path.exists():
        return None

    suffix = config_path.suffix.lower()
    try:
        with open(config_path, encoding="utf-8") as f:
            if suffix in [".yaml", ".yml"]:
                return yaml.safe_load(f)
            elif suffix == ".toml":
                return toml.load(f)
            elif suffix == ".json":
                return json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"⚠️  Error loading config from {config_path}: {e}", style="yellow")

    return None


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".wtool.json",
        Path.cwd() / ".wtool.yaml",
        Path.cwd() / ".wtool.yml",
        Path.cwd() / ".wtool.toml",
        Path.home() / ".config" / "wtool" / "config.json",
        Path.home() / ".config" / "wtool" / "config.yaml",
        Path.home() / ".config" / "wtool" / "config.toml",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: ComprehensiveConfig) -> None:
    """Load WTOOL_* environment variable overrides."""

    def get_env_float(key: str) -> Optional[float]:
        try:
            return float(os.environ[key]) if key in os.environ else None
        except ValueError:
            console.print(f"⚠️  Invalid float value for {key}, using default", style="yellow")
            return None

    if git_command := os.environ.get("WTOOL_GIT_COMMAND"):
        config.git.command = git_command

    if user_agent := os.environ.get("WTOOL_USER_AGENT"):
        config.network.user_agent = user_agent
    if connect_timeout := get_env_float("WTOOL_CONNECT_TIMEOUT"):
        config.network.connect_timeout = connect_timeout
    if read_timeout := get_env_float("WTOOL_READ_TIMEOUT"):
        config.network.read_timeout = read_timeout

    if file_name := os.environ.get("WTOOL_WORKSPACE_FILE"):
        config.workspace.file_name = file_name
    if rule_name := os.environ.get("WTOOL_RULE_NAME"):
        config.workspace.rule_name = rule_name

    if log_level := os.environ.get("WTOOL_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()


def apply_config_section(config: Any, section_data: Dict[str, Any], section_name: str) -> None:
    """Apply configuration from dictionary to config section."""
    if not isinstance(section_data, dict):
        console.print(f"⚠️  Config section {section_name} must be a mapping", style="yellow")
        return

    for key, value in section_data.items():
        if not hasattr(config, key):
            console.print(f"⚠️  Unknown config key in {section_name}: {key}", style="yellow")
            continue

        expected = type(getattr(config, key))
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if not isinstance(value, expected) or (expected is not bool and isinstance(value, bool)):
            console.print(
                f"⚠️  Invalid value for {section_name}.{key}: expected {expected.__name__}, "
                f"got {type(value).__name__}; using default",
                style="yellow",
            )
            continue
        setattr(config, key, value)


def load_config() -> ComprehensiveConfig:
    """Load configuration from file and environment."""
    global _global_config

    if _global_config is not None:
        return _global_config

    config = ComprehensiveConfig()

    config_file = find_config_file()
    if config_file:
        file_config = load_config_file(config_file)
        if file_config:
            for section_name in ("git", "network", "workspace", "logging"):
                if section_name in file_config:
                    apply_config_section(
                        getattr(config, section_name), file_config[section_name], section_name
                    )

    load_environment_overrides(config)

    validation_errors = validate_config_values(config)
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")
        console.print("Using default values for invalid settings.", style="yellow")
        _restore_invalid_defaults(config)

    _global_config = config
    return config


def _restore_invalid_defaults(config: ComprehensiveConfig) -> None:
    """Reset every section that fails validation back to its defaults."""
    defaults = ComprehensiveConfig()
    for section_name in ("git", "network", "workspace", "logging"):
        probe = ComprehensiveConfig(**{section_name: getattr(config, section_name)})
        if any(error.startswith(f"{section_name}.") for error in validate_config_values(probe)):
            setattr(config, section_name, getattr(defaults, section_name))


def get_config() -> ComprehensiveConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _global_config
    _global_config = None
