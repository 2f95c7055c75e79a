"""
Service interfaces for repository persistence and authorization.

The packers and the policy codec only talk to the repository through these
interfaces, reached via the Context passed to every operation:

    ┌──────────────────┐
    │ CollectionPacker │
    └────────┬─────────┘
             │
    ┌────────▼─────────┐
    │   PolicyCodec    │
    └────────┬─────────┘
             │  context.groups / context.authorize / ...
    ┌────────▼─────────┐
    │    Repository    │ ← InMemoryRepository, or any other backend
    └──────────────────┘

Every method takes the context first so implementations can scope reads and
writes to the caller's transaction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, BinaryIO, Iterable, Iterator, List, Optional

from bagforge.content.constants import ObjectType
from bagforge.content.models import (
    Account,
    Bitstream,
    Collection,
    Group,
    Item,
    RepositoryObject,
    ResourcePolicy,
)

if TYPE_CHECKING:
    from bagforge.core.context import Context


class GroupService(ABC):
    """Group lookup."""

    @abstractmethod
    def find_group_by_name(self, context: "Context", name: str) -> Optional[Group]:
        """Return the group with this exact name, or None."""


class AccountService(ABC):
    """Account lookup."""

    @abstractmethod
    def find_account_by_email(
        self, context: "Context", email: str
    ) -> Optional[Account]:
        """Return the account with this email (case-insensitive), or None."""


class ResourcePolicyService(ABC):
    """Resource policy factory."""

    @abstractmethod
    def create_policy(self, context: "Context") -> ResourcePolicy:
        """Create a new, unattached resource policy."""


class AuthorizeService(ABC):
    """Policy reads and bulk replacement."""

    @abstractmethod
    def get_policies(
        self, context: "Context", dso: RepositoryObject
    ) -> List[ResourcePolicy]:
        """Return the object's policies in stored order."""

    @abstractmethod
    def remove_all_policies(self, context: "Context", dso: RepositoryObject) -> None:
        """Drop every policy attached to the object."""

    @abstractmethod
    def add_policies(
        self,
        context: "Context",
        policies: Iterable[ResourcePolicy],
        dso: RepositoryObject,
    ) -> None:
        """Attach the policies to the object, preserving order."""


class CollectionService(ABC):
    """Collection field access and persistence."""

    @abstractmethod
    def get_metadata(self, collection: Collection, field: str) -> Optional[str]:
        """Return the value of a collection metadata slot."""

    @abstractmethod
    def set_metadata(
        self,
        context: "Context",
        collection: Collection,
        field: str,
        value: Optional[str],
    ) -> None:
        """Set a collection metadata slot. Unknown slots raise ValueError."""

    @abstractmethod
    def set_logo(
        self, context: "Context", collection: Collection, stream: BinaryIO
    ) -> Bitstream:
        """Replace the collection logo with the stream's content."""

    @abstractmethod
    def update(self, context: "Context", collection: Collection) -> None:
        """Persist pending changes to the collection."""


class ItemService(ABC):
    """Item enumeration."""

    @abstractmethod
    def find_items_by_collection(
        self, context: "Context", collection: Collection
    ) -> Iterator[Item]:
        """Lazily yield the items owned by the collection."""


class HandleService(ABC):
    """Persistent identifier resolution."""

    @abstractmethod
    def resolve_handle(
        self, context: "Context", handle: str
    ) -> Optional[RepositoryObject]:
        """Return the object registered under the handle, or None."""

    @abstractmethod
    def find_object(
        self, context: "Context", object_type: ObjectType, object_id: str
    ) -> Optional[RepositoryObject]:
        """Return the object of this type and internal id, or None."""


class Repository(
    GroupService,
    AccountService,
    ResourcePolicyService,
    AuthorizeService,
    CollectionService,
    ItemService,
    HandleService,
):
    """A backend implementing every service, plus transactions."""

    @abstractmethod
    def transaction(self, context: "Context") -> AbstractContextManager:
        """Scope a group of writes so they apply together or not at all."""
