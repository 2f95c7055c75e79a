"""Packer interface shared by all repository object packers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from bagforge.core.context import Context

# object.properties keys
BAG_TYPE = "bagType"
OBJECT_TYPE = "objectType"
OBJECT_ID = "objectId"
OWNER_ID = "ownerId"

# size() methods
SIZE_DEFAULT = "default"
SIZE_NORECURSE = "norecurse"
SIZE_METHODS = (SIZE_DEFAULT, SIZE_NORECURSE)


class Packer(ABC):
    """Packs one repository object into an archive and restores it."""

    @abstractmethod
    def pack(self, context: Context, pack_dir: Path) -> Path:
        """Write the object's AIP into pack_dir and return the archive path."""

    @abstractmethod
    def unpack(self, context: Context, archive: Path) -> Any:
        """Restore the object's state from an archive."""

    @abstractmethod
    def size(self, context: Context, method: str = SIZE_DEFAULT) -> int:
        """Estimate the packed size in bytes."""

    @abstractmethod
    def set_content_filter(self, filter_name: str) -> None:
        """Restrict packed content to the named filter."""

    @abstractmethod
    def set_reference_filter(self, filter_name: str) -> None:
        """Pack references instead of content for the named filter."""


def archive_name(dso: Any) -> str:
    """Archive stem for an object, e.g. ``COLLECTION@123456789-2``."""
    handle = (dso.handle or dso.id).replace("/", "-")
    return f"{dso.object_type.value.upper()}@{handle}"
