"""Tests for the in-memory repository backend."""

from __future__ import annotations

import io

import pytest

from bagforge.content.constants import Action, ObjectType
from bagforge.content.memory import InMemoryRepository
from bagforge.content.models import Bitstream, Collection, Group, Item, ResourcePolicy
from bagforge.core.context import Context


class TestRegistration:
    """Tests for registering principals and objects."""

    def test_system_groups(self, repository: InMemoryRepository) -> None:
        """Test Anonymous and Administrator exist by default."""
        assert repository.find_group_by_name(None, Group.ANONYMOUS) is not None
        assert repository.find_group_by_name(None, Group.ADMIN) is not None

    def test_without_system_groups(self) -> None:
        """Test a bare repository has no groups."""
        assert InMemoryRepository(with_system_groups=False).groups == []

    def test_duplicate_group_rejected(self, repository: InMemoryRepository) -> None:
        """Test group names are unique."""
        with pytest.raises(ValueError):
            repository.add_group(Group.ADMIN)

    def test_account_lookup_case_insensitive(
        self, repository: InMemoryRepository
    ) -> None:
        """Test emails match regardless of case."""
        account = repository.add_account("Curator@Example.org")

        assert repository.find_account_by_email(None, "curator@example.org") is account
        assert repository.find_account_by_email(None, "") is None

    def test_handles_minted(self, repository: InMemoryRepository) -> None:
        """Test handles are assigned from the prefix in order."""
        community = repository.add_community("Research")
        collection = repository.add_collection("Theses", community=community)

        assert community.handle == "123456789/1"
        assert collection.handle == "123456789/2"
        assert collection.communities == [community]

    def test_explicit_handle(self, repository: InMemoryRepository) -> None:
        """Test a given handle is used and must be unique."""
        repository.add_community("A", handle="10.1/a")

        with pytest.raises(ValueError):
            repository.add_community("B", handle="10.1/a")

    def test_collection_fields_initialized(
        self, repository: InMemoryRepository
    ) -> None:
        """Test every metadata slot exists on a new collection."""
        collection = repository.add_collection("Theses")

        assert collection.name == "Theses"
        assert repository.get_metadata(collection, "license") is None


class TestLookups:
    """Tests for handle and id resolution."""

    def test_resolve_handle(self, repository: InMemoryRepository) -> None:
        """Test handles resolve to their objects."""
        community = repository.add_community("Research")

        assert repository.resolve_handle(None, community.handle) is community
        assert repository.resolve_handle(None, "nope/1") is None

    def test_find_object_checks_type(self, repository: InMemoryRepository) -> None:
        """Test find_object only matches the requested type."""
        community = repository.add_community("Research")

        assert (
            repository.find_object(None, ObjectType.COMMUNITY, community.id)
            is community
        )
        assert repository.find_object(None, ObjectType.COLLECTION, community.id) is None

    def test_objects_by_type(self, repository: InMemoryRepository) -> None:
        """Test enumeration by object type."""
        community = repository.add_community("Research")
        collection = repository.add_collection("Theses", community=community)
        repository.add_item(collection, "One")

        assert repository.objects(ObjectType.COLLECTION) == [collection]
        assert len(repository.objects()) == 3

    def test_items_are_lazy(self, repository: InMemoryRepository) -> None:
        """Test find_items_by_collection returns an iterator, not a list."""
        collection = repository.add_collection("Theses")
        item = repository.add_item(collection, "One")
        repository.add_item(repository.add_collection("Other"), "Two")

        items = repository.find_items_by_collection(None, collection)

        assert not isinstance(items, list)
        assert list(items) == [item]


class TestCollectionService:
    """Tests for metadata and logo updates."""

    def test_set_metadata(self, repository: InMemoryRepository) -> None:
        """Test known fields can be set."""
        collection = repository.add_collection("Theses")

        repository.set_metadata(None, collection, "license", "CC0")

        assert repository.get_metadata(collection, "license") == "CC0"

    def test_unknown_field(self, repository: InMemoryRepository) -> None:
        """Test unknown fields are rejected."""
        collection = repository.add_collection("Theses")

        with pytest.raises(ValueError):
            repository.set_metadata(None, collection, "colour", "blue")

    def test_set_logo(self, repository: InMemoryRepository) -> None:
        """Test the logo is read from the stream."""
        collection = repository.add_collection("Theses")

        logo = repository.set_logo(None, collection, io.BytesIO(b"12345"))

        assert collection.logo is logo
        assert logo.size == 5

    def test_update_unregistered(self, repository: InMemoryRepository) -> None:
        """Test updating an unknown collection fails."""
        with pytest.raises(KeyError):
            repository.update(None, Collection())


class TestTransactions:
    """Tests for transaction rollback."""

    def test_commit(self, repository: InMemoryRepository, context: Context) -> None:
        """Test changes persist when the block succeeds."""
        collection = repository.add_collection("Theses")
        anonymous = repository.find_group_by_name(None, Group.ANONYMOUS)
        new = ResourcePolicy(action=Action.READ, group=anonymous)

        with context.transaction():
            repository.remove_all_policies(context, collection)
            repository.add_policies(context, [new], collection)

        assert collection.policies == [new]

    def test_rollback(self, repository: InMemoryRepository, context: Context) -> None:
        """Test policies are restored when the block raises."""
        collection = repository.add_collection("Theses")
        anonymous = repository.find_group_by_name(None, Group.ANONYMOUS)
        original = repository.add_policy(collection, Action.READ, group=anonymous)

        with pytest.raises(RuntimeError):
            with context.transaction():
                repository.remove_all_policies(context, collection)
                raise RuntimeError("boom")

        assert collection.policies == [original]

    def test_rollback_restores_metadata_and_logo(
        self, repository: InMemoryRepository, context: Context
    ) -> None:
        """Test collection metadata and logo are restored when the block raises."""
        collection = repository.add_collection("Original name")
        logo = Bitstream("logo", b"before")
        collection.logo = logo

        with pytest.raises(RuntimeError):
            with context.transaction():
                repository.set_metadata(context, collection, "name", "Theses")
                repository.set_logo(context, collection, io.BytesIO(b"after"))
                raise RuntimeError("boom")

        assert collection.metadata["name"] == "Original name"
        assert collection.logo is logo

    def test_nested_rolls_back_outermost(
        self, repository: InMemoryRepository, context: Context
    ) -> None:
        """Test an inner failure propagating out rolls back everything."""
        collection = repository.add_collection("Theses")
        anonymous = repository.find_group_by_name(None, Group.ANONYMOUS)
        original = repository.add_policy(collection, Action.READ, group=anonymous)

        with pytest.raises(RuntimeError):
            with context.transaction():
                repository.remove_all_policies(context, collection)
                with context.transaction():
                    raise RuntimeError("boom")

        assert collection.policies == [original]


class TestModels:
    """Tests for model defaults."""

    def test_bitstream_size_from_content(self) -> None:
        """Test size defaults to the content length."""
        assert Bitstream("a", b"abc").size == 3

    def test_bitstream_declared_size(self) -> None:
        """Test an explicit size is kept."""
        assert Bitstream("a", b"", size=99).size == 99

    def test_object_types(self) -> None:
        """Test each class reports its type."""
        assert Item.object_type is ObjectType.ITEM
        assert Collection.object_type is ObjectType.COLLECTION
