"""
Explicit operation context.

A Context is created by the caller and passed to every codec and packer
operation. It carries the repository services and opens transactions on
the repository. Nothing in bagforge reads a process-wide "current" context.

Not safe to share between concurrent operations.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from bagforge.content.services import (
        AccountService,
        AuthorizeService,
        CollectionService,
        GroupService,
        HandleService,
        ItemService,
        Repository,
        ResourcePolicyService,
    )


@dataclass
class Context:
    """Services for one pack, unpack or size call."""

    repository: "Repository"

    @property
    def groups(self) -> "GroupService":
        return self.repository

    @property
    def accounts(self) -> "AccountService":
        return self.repository

    @property
    def policies(self) -> "ResourcePolicyService":
        return self.repository

    @property
    def authorize(self) -> "AuthorizeService":
        return self.repository

    @property
    def collections(self) -> "CollectionService":
        return self.repository

    @property
    def items(self) -> "ItemService":
        return self.repository

    @property
    def handles(self) -> "HandleService":
        return self.repository

    @contextmanager
    def transaction(self) -> Iterator["Context"]:
        """Run the enclosed writes atomically on the repository."""
        with self.repository.transaction(self):
            yield self
