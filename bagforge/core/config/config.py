"""
Main configuration class for bagforge.

This module provides the Config dataclass that aggregates all sub-configs
and handles validation and dictionary parsing.

Configuration Hierarchy
-----------------------
    Config
    ├── PackConfig         # Archive format, scratch and output directories
    ├── PolicyConfig       # Strictness of policy restore
    ├── RepositoryConfig   # Snapshot file used by the CLI
    └── LoggingConfig      # Log level and optional log file

Environment Variables
---------------------
String values may use ${VAR_NAME} or ${VAR_NAME:default}; they are expanded
by from_dict() before the dataclasses are built.

Usage Example
-------------
    from bagforge.core.config_loaders import load_config

    config = load_config()
    fmt = config.pack.archive_format
    strict = config.policy.strict_actions
"""

from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, Optional

from bagforge.core.exceptions import ConfigurationError

ARCHIVE_FORMATS = ("zip", "tgz")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class PackConfig:
    """Archive packing configuration."""

    archive_format: str = "zip"
    output_dir: str = "aips"
    scratch_dir: Optional[str] = None  # None: system temp directory


@dataclass
class PolicyConfig:
    """Policy restore configuration."""

    # False restores entries with unknown actions without an action
    strict_actions: bool = True


@dataclass
class RepositoryConfig:
    """Repository snapshot configuration."""

    snapshot_path: str = "repository.json"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class Config:
    """Main bagforge configuration."""

    pack: PackConfig = field(default_factory=PackConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    repository: RepositoryConfig = field(default_factory=RepositoryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Runtime paths (set after loading)
    _base_path: Path = field(default_factory=Path.cwd, repr=False)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        assert isinstance(self.pack, PackConfig), "pack must be PackConfig"
        assert isinstance(self.policy, PolicyConfig), "policy must be PolicyConfig"

        self.pack.archive_format = self.pack.archive_format.lower()
        if self.pack.archive_format not in ARCHIVE_FORMATS:
            raise ConfigurationError(
                f"pack.archive_format must be one of {ARCHIVE_FORMATS}, "
                f"got: {self.pack.archive_format}",
                field="pack.archive_format",
                value=self.pack.archive_format,
            )

        self.logging.level = self.logging.level.upper()
        if self.logging.level not in LOG_LEVELS:
            raise ConfigurationError(
                f"logging.level must be one of {LOG_LEVELS}, "
                f"got: {self.logging.level}",
                field="logging.level",
                value=self.logging.level,
            )

        if not isinstance(self.policy.strict_actions, bool):
            self.policy.strict_actions = _parse_bool(self.policy.strict_actions)

    @property
    def output_path(self) -> Path:
        """Get absolute path to the archive output directory."""
        return self._resolve(self.pack.output_dir)

    @property
    def scratch_path(self) -> Optional[Path]:
        """Get the scratch directory for bag assembly and extraction."""
        if not self.pack.scratch_dir:
            return None
        return self._resolve(self.pack.scratch_dir)

    @property
    def snapshot_path(self) -> Path:
        """Get absolute path to the repository snapshot."""
        return self._resolve(self.repository.snapshot_path)

    @property
    def log_path(self) -> Optional[Path]:
        """Get the log file path, if file logging is enabled."""
        if not self.logging.file:
            return None
        return self._resolve(self.logging.file)

    def _resolve(self, value: str) -> Path:
        path = Path(value)
        if path.is_absolute():
            return path
        return self._base_path / path

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        result: dict[str, Any] = {}
        for key, value in asdict(self).items():
            if key.startswith("_"):
                continue
            result[key] = value
        return result

    @staticmethod
    def _filter_fields(cls_type: Any, data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Filter dict to only keys that match dataclass fields, handling None."""
        if not data:
            return {}
        valid_keys = {f.name for f in fields(cls_type)}
        return {k: v for k, v in data.items() if k in valid_keys}

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], base_path: Optional[Path] = None
    ) -> "Config":
        """Create Config from dictionary."""
        # Import here to avoid circular dependency
        from bagforge.core.config_loaders import expand_env_vars

        data = expand_env_vars(data or {})

        config = cls(
            pack=PackConfig(**cls._filter_fields(PackConfig, data.get("pack"))),
            policy=PolicyConfig(
                **cls._filter_fields(PolicyConfig, data.get("policy"))
            ),
            repository=RepositoryConfig(
                **cls._filter_fields(RepositoryConfig, data.get("repository"))
            ),
            logging=LoggingConfig(
                **cls._filter_fields(LoggingConfig, data.get("logging"))
            ),
        )

        if base_path:
            config._base_path = base_path

        return config


def _parse_bool(value: Any) -> bool:
    """Parse YAML/env style booleans ("true", "no", "1"...)."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"Not a boolean value: {value!r}", value=value)
