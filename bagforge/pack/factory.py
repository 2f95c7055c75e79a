"""Packer selection by object type."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from bagforge.content.models import Collection, RepositoryObject
from bagforge.core.exceptions import UnsupportedOperationError
from bagforge.pack.base import Packer, archive_name
from bagforge.pack.collection import CollectionPacker

__all__ = ["archive_name", "packer_for"]


def packer_for(
    dso: RepositoryObject,
    archive_format: str = "zip",
    strict_actions: bool = True,
    scratch_dir: Optional[Path] = None,
) -> Packer:
    """
    Return the packer for an object.

    Raises:
        UnsupportedOperationError: If no packer exists for the object's type
    """
    if isinstance(dso, Collection):
        return CollectionPacker(
            dso,
            archive_format=archive_format,
            strict_actions=strict_actions,
            scratch_dir=scratch_dir,
        )
    raise UnsupportedOperationError(
        f"No packer for {dso.object_type.value} {dso.handle}"
    )
