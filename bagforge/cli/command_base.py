"""Base class for all CLI commands.

Commands load the configuration and repository snapshot, resolve the target
object, and return an exit code instead of exiting, so they can be driven
directly from tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from rich.console import Console

from bagforge.cli import console as out
from bagforge.content.memory import InMemoryRepository
from bagforge.content.models import RepositoryObject
from bagforge.content.snapshot import load_snapshot
from bagforge.core.config import Config
from bagforge.core.config_loaders import load_config
from bagforge.core.context import Context
from bagforge.core.exceptions import BagForgeError, ConfigurationError
from bagforge.core.logging import configure_logging, get_logger

logger = get_logger(__name__)


@dataclass
class CliOptions:
    """Global options given before the command name."""

    config_path: Optional[Path] = None
    snapshot_path: Optional[Path] = None
    verbose: bool = False


class BagForgeCommand(ABC):
    """Abstract base class for all bagforge CLI commands.

    Example:
        class MyCommand(BagForgeCommand):
            def execute(self, handle: str) -> int:
                context = self.open_context()
                ...
                return 0
    """

    def __init__(
        self, options: Optional[CliOptions] = None, console: Optional[Console] = None
    ) -> None:
        self.options = options or CliOptions()
        self.console = console or out.get_console()
        self._config: Optional[Config] = None
        self.repository: Optional[InMemoryRepository] = None

    @abstractmethod
    def execute(self, *args: Any, **kwargs: Any) -> int:
        """Run the command and return its exit code (0 = success)."""

    # === Setup ===

    @property
    def config(self) -> Config:
        """Configuration, loaded on first access."""
        if self._config is None:
            config_path = self.options.config_path
            base_path = config_path.parent if config_path else None
            self._config = load_config(config_path, base_path)
            configure_logging(
                level="DEBUG" if self.options.verbose else self._config.logging.level,
                log_file=self._config.log_path,
            )
        return self._config

    @property
    def snapshot_path(self) -> Path:
        return self.options.snapshot_path or self.config.snapshot_path

    def open_context(self) -> Context:
        """Load the repository snapshot and create an operation context."""
        self.repository = load_snapshot(self.snapshot_path)
        return Context(repository=self.repository)

    def resolve(self, context: Context, handle: str) -> RepositoryObject:
        """Find the object registered under a handle."""
        dso = context.handles.resolve_handle(context, handle)
        if dso is None:
            raise ConfigurationError(
                f"No object with handle {handle} in {self.snapshot_path}",
                field="handle",
                value=handle,
            )
        return dso

    # === Output Methods ===

    def print_success(self, message: str) -> None:
        out.print_success(message)

    def print_warning(self, message: str) -> None:
        out.print_warning(message)

    # === Error Handling ===

    def handle_error(self, error: BagForgeError, context: str = "") -> int:
        """Render the error and return the exit code for it."""
        logger.debug("Command failed", error=type(error).__name__, detail=str(error))
        out.ErrorRenderer.render(error, context=context)
        return 1
