"""
JSON snapshots of an in-memory repository.

The CLI works against a snapshot file: it loads the repository, runs one
pack/unpack/size operation, and writes the file back after a restore.
Bitstream content is stored base64-encoded.
"""

from __future__ import annotations

import base64
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from bagforge.content.memory import DEFAULT_HANDLE_PREFIX, InMemoryRepository
from bagforge.content.models import (
    Bitstream,
    Bundle,
    Collection,
    Community,
    Item,
    RepositoryObject,
    ResourcePolicy,
)
from bagforge.core.exceptions import ConfigurationError
from bagforge.core.logging import get_logger

logger = get_logger(__name__)


class BitstreamModel(BaseModel):
    """Serialized bitstream."""

    id: str
    name: str
    content: str = Field(default="", description="Base64 encoded bytes")
    size: Optional[int] = None


class PolicyModel(BaseModel):
    """Serialized resource policy. Principals are referenced by name/email."""

    id: str
    action: Optional[int] = None
    rp_name: Optional[str] = None
    rp_description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    group: Optional[str] = None
    account: Optional[str] = None


class GroupModel(BaseModel):
    id: str
    name: str


class AccountModel(BaseModel):
    id: str
    email: str


class CommunityModel(BaseModel):
    id: str
    handle: str
    name: str = ""
    policies: List[PolicyModel] = Field(default_factory=list)


class CollectionModel(BaseModel):
    id: str
    handle: str
    metadata: Dict[str, Optional[str]] = Field(default_factory=dict)
    logo: Optional[BitstreamModel] = None
    communities: List[str] = Field(
        default_factory=list, description="Parent community ids"
    )
    policies: List[PolicyModel] = Field(default_factory=list)


class BundleModel(BaseModel):
    name: str
    bitstreams: List[BitstreamModel] = Field(default_factory=list)


class ItemModel(BaseModel):
    id: str
    handle: str
    name: str = ""
    collection: Optional[str] = Field(default=None, description="Owning collection id")
    bundles: List[BundleModel] = Field(default_factory=list)
    policies: List[PolicyModel] = Field(default_factory=list)


class RepositorySnapshot(BaseModel):
    """Root document of a snapshot file."""

    handle_prefix: str = DEFAULT_HANDLE_PREFIX
    groups: List[GroupModel] = Field(default_factory=list)
    accounts: List[AccountModel] = Field(default_factory=list)
    communities: List[CommunityModel] = Field(default_factory=list)
    collections: List[CollectionModel] = Field(default_factory=list)
    items: List[ItemModel] = Field(default_factory=list)


def load_snapshot(path: Path) -> InMemoryRepository:
    """
    Build a repository from a snapshot file.

    Raises:
        ConfigurationError: If the file is missing, unreadable, not a valid
            snapshot, or registers the same group, email or handle twice.
    """
    if not path.exists():
        raise ConfigurationError(f"Repository snapshot not found: {path}")
    try:
        snapshot = RepositorySnapshot.model_validate_json(
            path.read_text(encoding="utf-8")
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid repository snapshot {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read repository snapshot {path}: {e}") from e

    try:
        repository = from_snapshot(snapshot)
    except ValueError as e:
        raise ConfigurationError(f"Inconsistent repository snapshot {path}: {e}") from e
    logger.debug("Loaded repository snapshot", path=path)
    return repository


def save_snapshot(repository: InMemoryRepository, path: Path) -> None:
    """
    Write the repository to a snapshot file.

    Raises:
        ConfigurationError: If the file cannot be written.
    """
    snapshot = to_snapshot(repository)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot write repository snapshot {path}: {e}") from e
    logger.debug("Saved repository snapshot", path=path)


def from_snapshot(snapshot: RepositorySnapshot) -> InMemoryRepository:
    """Rebuild an in-memory repository from a snapshot model."""
    repo = InMemoryRepository(
        handle_prefix=snapshot.handle_prefix, with_system_groups=False
    )
    for group in snapshot.groups:
        repo.add_group(group.name, group_id=group.id)
    for account in snapshot.accounts:
        repo.add_account(account.email, account_id=account.id)

    communities: Dict[str, Community] = {}
    for model in snapshot.communities:
        community = repo.add_community(
            model.name, handle=model.handle, object_id=model.id
        )
        _load_policies(repo, community, model.policies)
        communities[model.id] = community

    collections: Dict[str, Collection] = {}
    for model in snapshot.collections:
        collection = repo.add_collection(handle=model.handle, object_id=model.id)
        collection.metadata.update(model.metadata)
        collection.communities = [
            communities[cid] for cid in model.communities if cid in communities
        ]
        if model.logo is not None:
            collection.logo = _load_bitstream(model.logo)
        _load_policies(repo, collection, model.policies)
        collections[model.id] = collection

    for model in snapshot.items:
        owner = collections.get(model.collection) if model.collection else None
        item = repo.add_item(owner, name=model.name, handle=model.handle, object_id=model.id)
        item.bundles = [
            Bundle(
                name=bundle.name,
                bitstreams=[_load_bitstream(b) for b in bundle.bitstreams],
            )
            for bundle in model.bundles
        ]
        _load_policies(repo, item, model.policies)

    return repo


def to_snapshot(repo: InMemoryRepository) -> RepositorySnapshot:
    """Describe an in-memory repository as a snapshot model."""
    snapshot = RepositorySnapshot(
        handle_prefix=repo.handle_prefix,
        groups=[GroupModel(id=g.id, name=g.name) for g in repo.groups],
        accounts=[AccountModel(id=a.id, email=a.email) for a in repo.accounts],
    )
    for dso in repo.objects():
        policies = [_dump_policy(p) for p in dso.policies]
        if isinstance(dso, Community):
            snapshot.communities.append(
                CommunityModel(
                    id=dso.id, handle=dso.handle, name=dso.name, policies=policies
                )
            )
        elif isinstance(dso, Collection):
            snapshot.collections.append(
                CollectionModel(
                    id=dso.id,
                    handle=dso.handle,
                    metadata=dict(dso.metadata),
                    logo=_dump_bitstream(dso.logo) if dso.logo else None,
                    communities=[c.id for c in dso.communities],
                    policies=policies,
                )
            )
        elif isinstance(dso, Item):
            snapshot.items.append(
                ItemModel(
                    id=dso.id,
                    handle=dso.handle,
                    name=dso.name,
                    collection=dso.collection.id if dso.collection else None,
                    bundles=[
                        BundleModel(
                            name=bundle.name,
                            bitstreams=[_dump_bitstream(b) for b in bundle.bitstreams],
                        )
                        for bundle in dso.bundles
                    ],
                    policies=policies,
                )
            )
    return snapshot


def _load_bitstream(model: BitstreamModel) -> Bitstream:
    return Bitstream(
        name=model.name,
        content=base64.b64decode(model.content),
        size=model.size,
        id=model.id,
    )


def _dump_bitstream(bitstream: Bitstream) -> BitstreamModel:
    return BitstreamModel(
        id=bitstream.id,
        name=bitstream.name,
        content=base64.b64encode(bitstream.content).decode("ascii"),
        size=bitstream.size,
    )


def _load_policies(
    repo: InMemoryRepository, dso: RepositoryObject, models: List[PolicyModel]
) -> None:
    for model in models:
        group = repo.find_group_by_name(None, model.group) if model.group else None
        account = (
            repo.find_account_by_email(None, model.account) if model.account else None
        )
        if model.group and group is None:
            logger.warning("Snapshot policy names unknown group", group=model.group)
        if model.account and account is None:
            logger.warning(
                "Snapshot policy names unknown account", account=model.account
            )
        policy = repo.add_policy(
            dso,
            model.action,
            group=group,
            account=account,
            rp_name=model.rp_name,
            rp_description=model.rp_description,
            start_date=model.start_date,
            end_date=model.end_date,
        )
        policy.id = model.id


def _dump_policy(policy: ResourcePolicy) -> PolicyModel:
    return PolicyModel(
        id=policy.id,
        action=policy.action,
        rp_name=policy.rp_name,
        rp_description=policy.rp_description,
        start_date=policy.start_date,
        end_date=policy.end_date,
        group=policy.group.name if policy.group else None,
        account=policy.account.email if policy.account else None,
    )
