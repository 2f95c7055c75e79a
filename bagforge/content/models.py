"""
Repository content model.

Plain dataclasses for the objects a repository stores: principals (groups
and accounts), resource policies, bitstreams, and the community /
collection / item hierarchy. Persistence lives behind the service
interfaces in bagforge.content.services; these classes carry state only.
"""

from __future__ import annotations

import io
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import BinaryIO, ClassVar, Dict, List, Optional, Tuple

from bagforge.content.constants import ObjectType

# Collection metadata slots. These must stay in step with the stored
# collection schema; they are the persistent object state packed into AIPs.
COLLECTION_FIELDS: Tuple[str, ...] = (
    "name",
    "short_description",
    "introductory_text",
    "provenance_description",
    "license",
    "copyright_text",
    "side_bar_text",
)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(eq=False)
class Group:
    """A named group of accounts."""

    ANONYMOUS: ClassVar[str] = "Anonymous"
    ADMIN: ClassVar[str] = "Administrator"

    name: str
    id: str = field(default_factory=_new_id)


@dataclass(eq=False)
class Account:
    """An individual account, identified by its email address."""

    email: str
    id: str = field(default_factory=_new_id)


@dataclass(eq=False)
class ResourcePolicy:
    """
    Access-control rule binding one principal to an action.

    Exactly one of group/account is expected; a policy with neither is
    tolerated but has no resolvable principal.
    """

    action: Optional[int] = None
    rp_name: Optional[str] = None
    rp_description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    group: Optional[Group] = None
    account: Optional[Account] = None
    id: str = field(default_factory=_new_id)


@dataclass(eq=False)
class Bitstream:
    """A stored binary file."""

    name: str
    content: bytes = b""
    size: Optional[int] = None
    id: str = field(default_factory=_new_id)

    def __post_init__(self) -> None:
        if self.size is None:
            self.size = len(self.content)

    def open(self) -> BinaryIO:
        """Open the bitstream content for reading."""
        return io.BytesIO(self.content)


@dataclass(eq=False)
class Bundle:
    """A named group of bitstreams inside an item."""

    name: str
    bitstreams: List[Bitstream] = field(default_factory=list)


@dataclass(eq=False)
class RepositoryObject:
    """Base class for addressable objects carrying policies."""

    object_type: ClassVar[ObjectType]

    id: str = field(default_factory=_new_id)
    handle: Optional[str] = None
    policies: List[ResourcePolicy] = field(default_factory=list)


@dataclass(eq=False)
class Community(RepositoryObject):
    """Top-level container of collections."""

    object_type: ClassVar[ObjectType] = ObjectType.COMMUNITY

    name: str = ""


@dataclass(eq=False)
class Collection(RepositoryObject):
    """Container of items, owned by zero or more communities."""

    object_type: ClassVar[ObjectType] = ObjectType.COLLECTION

    metadata: Dict[str, Optional[str]] = field(default_factory=dict)
    logo: Optional[Bitstream] = None
    communities: List[Community] = field(default_factory=list)

    @property
    def name(self) -> Optional[str]:
        return self.metadata.get("name")


@dataclass(eq=False)
class Item(RepositoryObject):
    """An archived item holding bundles of bitstreams."""

    object_type: ClassVar[ObjectType] = ObjectType.ITEM

    name: str = ""
    collection: Optional[Collection] = None
    bundles: List[Bundle] = field(default_factory=list)
