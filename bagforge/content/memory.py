"""
In-memory repository backend.

Implements every service interface over plain dictionaries. It is the
backend the CLI loads from a JSON snapshot (see bagforge.content.snapshot)
and the one the test-suite builds fixtures with.

Transactions snapshot the policy lists of every registered object, plus the
metadata and logo of every collection, when the outermost transaction opens
and put them back if the block raises. A failed restore never leaves an
object half-updated.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import (
    TYPE_CHECKING,
    BinaryIO,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
)

from bagforge.content.constants import ObjectType
from bagforge.content.models import (
    COLLECTION_FIELDS,
    Account,
    Bitstream,
    Bundle,
    Collection,
    Community,
    Group,
    Item,
    RepositoryObject,
    ResourcePolicy,
)
from bagforge.content.services import Repository
from bagforge.core.logging import get_logger

if TYPE_CHECKING:
    from bagforge.core.context import Context

logger = get_logger(__name__)

DEFAULT_HANDLE_PREFIX = "123456789"


class InMemoryRepository(Repository):
    """
    Dictionary-backed repository.

    Example:
        >>> repo = InMemoryRepository()
        >>> community = repo.add_community("Research")
        >>> collection = repo.add_collection("Theses", community=community)
        >>> collection.handle
        '123456789/2'
    """

    def __init__(
        self, handle_prefix: str = DEFAULT_HANDLE_PREFIX, with_system_groups: bool = True
    ) -> None:
        self.handle_prefix = handle_prefix
        self._next_handle = 1
        self._groups: Dict[str, Group] = {}
        self._accounts: Dict[str, Account] = {}
        self._objects: Dict[str, RepositoryObject] = {}
        self._handles: Dict[str, RepositoryObject] = {}
        self._tx_depth = 0
        self._tx_saved: Optional[Dict[str, _SavedState]] = None

        if with_system_groups:
            self.add_group(Group.ANONYMOUS)
            self.add_group(Group.ADMIN)

    # === Registration ===

    def add_group(self, name: str, group_id: Optional[str] = None) -> Group:
        """Register a group. Names are unique."""
        if not name:
            raise ValueError("group name must be a non-empty string")
        if name in self._groups:
            raise ValueError(f"Group already exists: {name}")
        group = Group(name=name) if group_id is None else Group(name=name, id=group_id)
        self._groups[name] = group
        return group

    def remove_group(self, name: str) -> None:
        """Unregister a group."""
        self._groups.pop(name, None)

    def add_account(self, email: str, account_id: Optional[str] = None) -> Account:
        """Register an account. Emails are unique, case-insensitively."""
        if not email:
            raise ValueError("email must be a non-empty string")
        key = email.lower()
        if key in self._accounts:
            raise ValueError(f"Account already exists: {email}")
        account = (
            Account(email=email)
            if account_id is None
            else Account(email=email, id=account_id)
        )
        self._accounts[key] = account
        return account

    def add_community(
        self,
        name: str,
        handle: Optional[str] = None,
        object_id: Optional[str] = None,
    ) -> Community:
        """Register a community."""
        community = Community(name=name)
        return self._register(community, handle, object_id)

    def add_collection(
        self,
        name: Optional[str] = None,
        community: Optional[Community] = None,
        handle: Optional[str] = None,
        object_id: Optional[str] = None,
    ) -> Collection:
        """Register a collection, optionally inside a community."""
        collection = Collection(metadata={f: None for f in COLLECTION_FIELDS})
        collection.metadata["name"] = name
        if community is not None:
            collection.communities.append(community)
        return self._register(collection, handle, object_id)

    def add_item(
        self,
        collection: Collection,
        name: str = "",
        bitstreams: Sequence[Bitstream] = (),
        handle: Optional[str] = None,
        object_id: Optional[str] = None,
    ) -> Item:
        """Register an item owned by the collection, with one ORIGINAL bundle."""
        item = Item(name=name, collection=collection)
        if bitstreams:
            item.bundles.append(Bundle(name="ORIGINAL", bitstreams=list(bitstreams)))
        return self._register(item, handle, object_id)

    def add_policy(
        self,
        dso: RepositoryObject,
        action: Optional[int],
        group: Optional[Group] = None,
        account: Optional[Account] = None,
        rp_name: Optional[str] = None,
        rp_description: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> ResourcePolicy:
        """Attach a new policy to an object."""
        policy = ResourcePolicy(
            action=None if action is None else int(action),
            rp_name=rp_name,
            rp_description=rp_description,
            start_date=start_date,
            end_date=end_date,
            group=group,
            account=account,
        )
        dso.policies.append(policy)
        return policy

    def _register(self, dso, handle: Optional[str], object_id: Optional[str]):
        if object_id is not None:
            dso.id = object_id
        dso.handle = handle or self._mint_handle()
        if dso.handle in self._handles:
            raise ValueError(f"Handle already registered: {dso.handle}")
        self._objects[dso.id] = dso
        self._handles[dso.handle] = dso
        return dso

    def _mint_handle(self) -> str:
        while True:
            handle = f"{self.handle_prefix}/{self._next_handle}"
            self._next_handle += 1
            if handle not in self._handles:
                return handle

    # === Enumeration ===

    @property
    def groups(self) -> List[Group]:
        return list(self._groups.values())

    @property
    def accounts(self) -> List[Account]:
        return list(self._accounts.values())

    def objects(self, object_type: Optional[ObjectType] = None) -> List[RepositoryObject]:
        """Registered objects in registration order, optionally by type."""
        return [
            dso
            for dso in self._objects.values()
            if object_type is None or dso.object_type is object_type
        ]

    # === GroupService / AccountService ===

    def find_group_by_name(self, context: "Context", name: str) -> Optional[Group]:
        return self._groups.get(name)

    def find_account_by_email(
        self, context: "Context", email: str
    ) -> Optional[Account]:
        if not email:
            return None
        return self._accounts.get(email.lower())

    # === ResourcePolicyService / AuthorizeService ===

    def create_policy(self, context: "Context") -> ResourcePolicy:
        return ResourcePolicy()

    def get_policies(
        self, context: "Context", dso: RepositoryObject
    ) -> List[ResourcePolicy]:
        return list(dso.policies)

    def remove_all_policies(self, context: "Context", dso: RepositoryObject) -> None:
        logger.debug("Removing policies", handle=dso.handle, count=len(dso.policies))
        dso.policies = []

    def add_policies(
        self,
        context: "Context",
        policies: Iterable[ResourcePolicy],
        dso: RepositoryObject,
    ) -> None:
        policies = list(policies)
        dso.policies.extend(policies)
        logger.debug("Added policies", handle=dso.handle, count=len(policies))

    # === CollectionService ===

    def get_metadata(self, collection: Collection, field: str) -> Optional[str]:
        if field not in COLLECTION_FIELDS:
            raise ValueError(f"Unknown collection field: {field}")
        return collection.metadata.get(field)

    def set_metadata(
        self,
        context: "Context",
        collection: Collection,
        field: str,
        value: Optional[str],
    ) -> None:
        if field not in COLLECTION_FIELDS:
            raise ValueError(f"Unknown collection field: {field}")
        collection.metadata[field] = value

    def set_logo(
        self, context: "Context", collection: Collection, stream: BinaryIO
    ) -> Bitstream:
        logo = Bitstream(name="logo", content=stream.read())
        collection.logo = logo
        return logo

    def update(self, context: "Context", collection: Collection) -> None:
        if collection.id not in self._objects:
            raise KeyError(f"Collection is not registered: {collection.handle}")
        logger.debug("Updated collection", handle=collection.handle)

    # === ItemService ===

    def find_items_by_collection(
        self, context: "Context", collection: Collection
    ) -> Iterator[Item]:
        for dso in list(self._objects.values()):
            if isinstance(dso, Item) and dso.collection is collection:
                yield dso

    # === HandleService ===

    def resolve_handle(
        self, context: "Context", handle: str
    ) -> Optional[RepositoryObject]:
        return self._handles.get(handle)

    def find_object(
        self, context: "Context", object_type: ObjectType, object_id: str
    ) -> Optional[RepositoryObject]:
        dso = self._objects.get(object_id)
        if dso is None or dso.object_type is not object_type:
            return None
        return dso

    # === Transactions ===

    @contextmanager
    def transaction(self, context: "Context") -> Iterator[None]:
        outermost = self._tx_depth == 0
        if outermost:
            self._tx_saved = {
                object_id: _save_state(dso)
                for object_id, dso in self._objects.items()
            }
        self._tx_depth += 1
        try:
            yield
        except BaseException:
            if outermost:
                self._rollback()
            raise
        finally:
            self._tx_depth -= 1
            if outermost:
                self._tx_saved = None

    def _rollback(self) -> None:
        logger.warning("Rolling back repository changes")
        for object_id, saved in (self._tx_saved or {}).items():
            dso = self._objects.get(object_id)
            if dso is None:
                continue
            dso.policies = saved.policies
            if isinstance(dso, Collection):
                dso.metadata = saved.metadata
                dso.logo = saved.logo


@dataclass
class _SavedState:
    policies: List[ResourcePolicy]
    metadata: Optional[Dict[str, Optional[str]]] = None
    logo: Optional[Bitstream] = None


def _save_state(dso: RepositoryObject) -> _SavedState:
    if isinstance(dso, Collection):
        return _SavedState(list(dso.policies), dict(dso.metadata), dso.logo)
    return _SavedState(list(dso.policies))
