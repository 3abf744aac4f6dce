"""
Configuration management for flake-locker.

Settings are layered: dataclass defaults, then a config file (JSON or YAML),
then environment variables. Command-line flags override all of these.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from rich.console import Console

from .error_handling import DEFAULT_LOG_FORMAT, ErrorCategory, get_error_handler
from .parsers import MAX_FILE_SIZE, SUPPORTED_VERSIONS

console = Console(stderr=True)

OUTPUT_FORMATS = ("console", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LintConfig:
    """Duplicate detection and output configuration."""

    include_revision: bool = False
    ignore_unlocked: bool = False
    output_format: str = "console"
    quiet: bool = False
    verbose: bool = False
    default_lock_file: str = "flake.lock"


@dataclass
class LockConfig:
    """Lock file reading limits."""

    supported_versions: List[int] = field(
        default_factory=lambda: list(SUPPORTED_VERSIONS)
    )
    max_file_size_mb: int = MAX_FILE_SIZE // (1024 * 1024)

    @property
    def max_file_size_bytes(self) -> int:
        """Convert MB to bytes for internal use."""
        return self.max_file_size_mb * 1024 * 1024


@dataclass
class LoggingConfig:
    """Logging and error handling configuration."""

    log_level: str = "WARNING"
    log_format: str = DEFAULT_LOG_FORMAT


@dataclass
class ComprehensiveConfig:
    """Main configuration containing all subsections."""

    lint: LintConfig = field(default_factory=LintConfig)
    lock: LockConfig = field(default_factory=LockConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Global configuration instance
_global_config: Optional[ComprehensiveConfig] = None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_log_format(value: Any) -> bool:
    if not isinstance(value, str) or not value:
        return False
    try:
        logging.Formatter(value)
    except ValueError:
        return False
    return True


def _config_checks(config: ComprehensiveConfig) -> List[Tuple[str, str, bool, str]]:
    """(section, key, valid, message) for every setting."""
    lint, lock, log = config.lint, config.lock, config.logging
    return [
        *(
            (
                "lint",
                key,
                isinstance(getattr(lint, key), bool),
                f"lint.{key} must be true or false",
            )
            for key in ("include_revision", "ignore_unlocked", "quiet", "verbose")
        ),
        (
            "lint",
            "output_format",
            isinstance(lint.output_format, str)
            and lint.output_format.lower() in OUTPUT_FORMATS,
            f"lint.output_format must be one of {', '.join(OUTPUT_FORMATS)}",
        ),
        (
            "lint",
            "default_lock_file",
            isinstance(lint.default_lock_file, str) and bool(lint.default_lock_file),
            "lint.default_lock_file must be a non-empty string",
        ),
        (
            "lock",
            "supported_versions",
            isinstance(lock.supported_versions, list)
            and bool(lock.supported_versions)
            and all(_is_int(v) for v in lock.supported_versions),
            "lock.supported_versions must be a non-empty list of integers",
        ),
        (
            "lock",
            "max_file_size_mb",
            _is_int(lock.max_file_size_mb) and lock.max_file_size_mb > 0,
            "lock.max_file_size_mb must be a positive integer",
        ),
        (
            "logging",
            "log_level",
            isinstance(log.log_level, str) and log.log_level.upper() in LOG_LEVELS,
            f"logging.log_level must be one of {', '.join(LOG_LEVELS)}",
        ),
        (
            "logging",
            "log_format",
            _is_log_format(log.log_format),
            "logging.log_format must be a valid logging format string",
        ),
    ]


def validate_config_values(config: ComprehensiveConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Values read from config files are not type-checked when applied, so
    every setting is checked for both type and range here.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    return [message for _, _, valid, message in _config_checks(config) if not valid]


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from file."""
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            if config_path.suffix.lower() in [".yaml", ".yml"]:
                return yaml.safe_load(f)
            elif config_path.suffix.lower() == ".json":
                return json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        get_error_handler().warning(
            ErrorCategory.CONFIGURATION,
            f"Error loading config from {config_path}: {e}",
            "cli_config",
            "load_config_file",
            details={"config_file": config_path.name},
            suggestions=["Run `flake-locker config init --force` for a fresh file"],
        )

    return None


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".flake-locker.json",
        Path.cwd() / ".flake-locker.yaml",
        Path.cwd() / ".flake-locker.yml",
        Path.home() / ".config" / "flake-locker" / "config.json",
        Path.home() / ".config" / "flake-locker" / "config.yaml",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: ComprehensiveConfig) -> None:
    """Load environment variable overrides."""

    def get_env_bool(key: str, default: bool = False) -> bool:
        value = os.environ.get(key, "").lower()
        return value in ["true", "1", "yes", "on"] if value else default

    def get_env_int(key: str, default: Optional[int] = None) -> Optional[int]:
        try:
            return int(os.environ[key]) if key in os.environ else default
        except ValueError:
            console.print(
                f"⚠️  Invalid integer value for {key}, using default", style="yellow"
            )
            return default

    config.lint.include_revision = get_env_bool(
        "FLAKE_LOCKER_INCLUDE_REVISION", config.lint.include_revision
    )
    config.lint.ignore_unlocked = get_env_bool(
        "FLAKE_LOCKER_IGNORE_UNLOCKED", config.lint.ignore_unlocked
    )
    if output_format := os.environ.get("FLAKE_LOCKER_OUTPUT_FORMAT"):
        config.lint.output_format = output_format.lower()

    if max_file_size := get_env_int("FLAKE_LOCKER_MAX_FILE_SIZE_MB"):
        config.lock.max_file_size_mb = max_file_size

    if log_level := os.environ.get("FLAKE_LOCKER_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """Apply configuration from dictionary to config section."""
    for key, value in section_data.items():
        if hasattr(config, key):
            setattr(config, key, value)
        else:
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )


def load_config() -> ComprehensiveConfig:
    """Load configuration from file and environment."""
    global _global_config

    if _global_config is not None:
        return _global_config

    config = ComprehensiveConfig()

    config_file = find_config_file()
    if config_file:
        file_config = load_config_file(config_file)
        if isinstance(file_config, dict):
            for section_name in ("lint", "lock", "logging"):
                section_data = file_config.get(section_name)
                if isinstance(section_data, dict):
                    apply_config_section(
                        getattr(config, section_name), section_data, section_name
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
    defaults = ComprehensiveConfig()
    for section, key, valid, _ in _config_checks(config):
        if not valid:
            setattr(
                getattr(config, section), key, getattr(getattr(defaults, section), key)
            )


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


def create_sample_config() -> str:
    """Generate sample configuration."""
    defaults = ComprehensiveConfig()
    sample_config = {
        "lint": {
            "include_revision": defaults.lint.include_revision,
            "ignore_unlocked": defaults.lint.ignore_unlocked,
            "output_format": defaults.lint.output_format,
            "default_lock_file": defaults.lint.default_lock_file,
        },
        "lock": {
            "supported_versions": defaults.lock.supported_versions,
            "max_file_size_mb": defaults.lock.max_file_size_mb,
        },
        "logging": {
            "log_level": defaults.logging.log_level,
            "log_format": defaults.logging.log_format,
        },
    }

    return json.dumps(sample_config, indent=2)
