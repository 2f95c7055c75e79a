"""
Configuration Loading and Management Functions.

Handles loading, saving, and applying environment overrides to bagforge
configuration.

Precedence: 1. BAGFORGE_* environment variables, 2. YAML file, 3. Defaults.

Environment overrides
---------------------
    BAGFORGE_ARCHIVE_FORMAT   pack.archive_format (zip | tgz)
    BAGFORGE_OUTPUT_DIR       pack.output_dir
    BAGFORGE_STRICT_ACTIONS   policy.strict_actions (true | false)
    BAGFORGE_SNAPSHOT         repository.snapshot_path
    BAGFORGE_LOG_LEVEL        logging.level
"""

import os
import re
from pathlib import Path
from typing import Any, Optional, TYPE_CHECKING

import yaml

from bagforge.core.exceptions import ConfigurationError
from bagforge.core.logging import get_logger

if TYPE_CHECKING:
    from bagforge.core.config import Config

logger = get_logger(__name__)

CONFIG_FILENAMES = ("bagforge.yaml", "bagforge.yml")


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values.

    Handles strings with ${VAR_NAME} or ${VAR_NAME:default} syntax inside
    nested dictionaries and lists.

    Args:
        value: Configuration value (string, dict, list, or primitive)

    Returns:
        Value with all environment variables expanded
    """
    if isinstance(value, str):
        pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

        def replace_env_var(match: re.Match) -> str:
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replace_env_var, value)
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


def _apply_env_overrides(config: "Config") -> "Config":
    """
    Apply environment variable overrides to configuration.

    Environment variables take precedence over config file values.
    """
    from bagforge.core.config.config import _parse_bool

    archive_format = os.environ.get("BAGFORGE_ARCHIVE_FORMAT")
    if archive_format:
        config.pack.archive_format = archive_format

    output_dir = os.environ.get("BAGFORGE_OUTPUT_DIR")
    if output_dir:
        config.pack.output_dir = output_dir

    strict = os.environ.get("BAGFORGE_STRICT_ACTIONS")
    if strict:
        config.policy.strict_actions = _parse_bool(strict)

    snapshot = os.environ.get("BAGFORGE_SNAPSHOT")
    if snapshot:
        config.repository.snapshot_path = snapshot

    log_level = os.environ.get("BAGFORGE_LOG_LEVEL")
    if log_level:
        config.logging.level = log_level

    # Re-run validation on the overridden values
    config.__post_init__()
    return config


def load_config(
    config_path: Optional[Path] = None, base_path: Optional[Path] = None
) -> "Config":
    """
    Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to config file. Defaults to bagforge.yaml in base_path.
        base_path: Base path for relative paths. Defaults to current directory.

    Returns:
        Config object with all settings.

    Raises:
        ConfigurationError: If the file exists but cannot be parsed.
    """
    # Lazy import to avoid circular dependency
    from bagforge.core.config import Config

    base_path = base_path or Path.cwd()

    if config_path is None:
        for filename in CONFIG_FILENAMES:
            candidate = base_path / filename
            if candidate.exists():
                config_path = candidate
                break
        else:
            return _create_default_config(base_path)
    if not config_path.exists():
        logger.warning("Config file not found, using defaults", path=config_path)
        return _create_default_config(base_path)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Top level of {config_path} must be a mapping", value=data
        )

    config = Config.from_dict(data, base_path)
    return _apply_env_overrides(config)


def _create_default_config(base_path: Path) -> "Config":
    """Create default configuration with environment overrides."""
    from bagforge.core.config import Config

    config = Config()
    config._base_path = base_path
    return _apply_env_overrides(config)


def save_config(config: "Config", config_path: Optional[Path] = None) -> None:
    """Save configuration to YAML file."""
    if config_path is None:
        config_path = config._base_path / CONFIG_FILENAMES[0]

    config_dict = config.to_dict()

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
