"""
Shared pytest fixtures and configuration for bagforge tests.

Fixture Organization
--------------------
- **repository**: InMemoryRepository with the system groups
- **context**: Context over that repository
- **community / collection**: a community owning one collection
- **populated_collection**: collection with metadata, a logo, items and
  one policy for each principal context
- **clean_env**: removes BAGFORGE_* environment overrides
"""

from __future__ import annotations

import os
from datetime import date

import pytest

from bagforge.content.constants import Action
from bagforge.content.memory import InMemoryRepository
from bagforge.content.models import Bitstream, Collection, Community, Group
from bagforge.core.context import Context

LOGO_BYTES = b"\x89PNG\r\n\x1a\n" + b"logo" * 64


@pytest.fixture
def repository() -> InMemoryRepository:
    """Empty repository holding only the Anonymous and Administrator groups."""
    return InMemoryRepository()


@pytest.fixture
def context(repository: InMemoryRepository) -> Context:
    return Context(repository=repository)


@pytest.fixture
def community(repository: InMemoryRepository) -> Community:
    return repository.add_community("Research")


@pytest.fixture
def collection(repository: InMemoryRepository, community: Community) -> Collection:
    return repository.add_collection("Theses", community=community)


@pytest.fixture
def populated_collection(
    repository: InMemoryRepository, collection: Collection
) -> Collection:
    """
    Collection with every kind of state a pack carries.

    Policies, in order:
        READ for Anonymous
        ADMIN for Administrator
        ADD for the collection's own submitter group (managed)
        WRITE for curator@example.org, with a time window
    """
    collection.metadata.update(
        {
            "short_description": "Graduate theses",
            "introductory_text": "<p>Welcome</p>",
            "license": "CC-BY-4.0",
            "copyright_text": "(c) Example University",
        }
    )
    collection.logo = Bitstream(name="logo.png", content=LOGO_BYTES)

    submitters = repository.add_group(f"COLLECTION_{collection.id}_SUBMIT")
    curator = repository.add_account("curator@example.org")

    repository.add_policy(
        collection, Action.READ, group=repository.find_group_by_name(None, Group.ANONYMOUS)
    )
    repository.add_policy(
        collection,
        Action.ADMIN,
        group=repository.find_group_by_name(None, Group.ADMIN),
        rp_name="admins",
    )
    repository.add_policy(
        collection,
        Action.ADD,
        group=submitters,
        rp_description="Submission rights",
    )
    repository.add_policy(
        collection,
        Action.WRITE,
        account=curator,
        start_date=date(2020, 1, 1),
        end_date=date(2099, 12, 31),
    )

    repository.add_item(
        collection, "First", bitstreams=[Bitstream("a.pdf", b"a" * 100)]
    )
    repository.add_item(
        collection, "Second", bitstreams=[Bitstream("b.pdf", b"b" * 250)]
    )
    return collection


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run the test without BAGFORGE_* overrides from the environment."""
    for key in list(os.environ):
        if key.startswith("BAGFORGE_"):
            monkeypatch.delenv(key)
