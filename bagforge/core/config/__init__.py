"""
Configuration Management for bagforge.

Configuration is a hierarchy of dataclasses mapped to a YAML file:

    from bagforge.core.config import Config, PackConfig

Loading and saving live in config_loaders to avoid circular imports:

    from bagforge.core.config_loaders import load_config
"""

from bagforge.core.config.config import (
    ARCHIVE_FORMATS,
    Config,
    LoggingConfig,
    PackConfig,
    PolicyConfig,
    RepositoryConfig,
)

__all__ = [
    "ARCHIVE_FORMATS",
    "Config",
    "LoggingConfig",
    "PackConfig",
    "PolicyConfig",
    "RepositoryConfig",
]
