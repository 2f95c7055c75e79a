"""Tests for group name translation."""

from __future__ import annotations

import pytest

from bagforge.content.memory import InMemoryRepository
from bagforge.content.models import Collection, Community
from bagforge.content.names import GroupNameTranslator
from bagforge.core.context import Context
from bagforge.core.exceptions import TranslationError


@pytest.fixture
def translator() -> GroupNameTranslator:
    return GroupNameTranslator()


class TestExportName:
    """Tests for GroupNameTranslator.export_name."""

    def test_collection_group(
        self, translator: GroupNameTranslator, context: Context, collection: Collection
    ) -> None:
        """Test the internal id is replaced by the handle."""
        exported = translator.export_name(context, f"COLLECTION_{collection.id}_ADMIN")

        assert exported == f"COLLECTION_hdl:{collection.handle}_ADMIN"

    def test_community_group_with_underscored_suffix(
        self, translator: GroupNameTranslator, context: Context, community: Community
    ) -> None:
        """Test suffixes containing underscores are kept whole."""
        exported = translator.export_name(
            context, f"COMMUNITY_{community.id}_WORKFLOW_STEP_1"
        )

        assert exported == f"COMMUNITY_hdl:{community.handle}_WORKFLOW_STEP_1"

    @pytest.mark.parametrize("name", ["Editors", "Anonymous", "COLLECTION"])
    def test_plain_names_unchanged(
        self, translator: GroupNameTranslator, context: Context, name: str
    ) -> None:
        """Test names without an object reference pass through."""
        assert translator.export_name(context, name) == name

    def test_already_exported_unchanged(
        self, translator: GroupNameTranslator, context: Context
    ) -> None:
        """Test an exported name is not translated again."""
        name = "COLLECTION_hdl:123456789/2_ADMIN"

        assert translator.export_name(context, name) == name

    def test_unknown_object(
        self, translator: GroupNameTranslator, context: Context
    ) -> None:
        """Test a reference to a missing object fails."""
        with pytest.raises(TranslationError):
            translator.export_name(context, "COLLECTION_deadbeef_ADMIN")

    def test_wrong_type(
        self, translator: GroupNameTranslator, context: Context, community: Community
    ) -> None:
        """Test a community id named as a collection fails."""
        with pytest.raises(TranslationError):
            translator.export_name(context, f"COLLECTION_{community.id}_ADMIN")


class TestImportName:
    """Tests for GroupNameTranslator.import_name."""

    def test_round_trip(
        self, translator: GroupNameTranslator, context: Context, collection: Collection
    ) -> None:
        """Test import reverses export."""
        local = f"COLLECTION_{collection.id}_SUBMIT"

        exported = translator.export_name(context, local)

        assert translator.import_name(context, exported) == local

    def test_resolves_to_target_repository_ids(
        self, translator: GroupNameTranslator
    ) -> None:
        """Test the handle resolves to the importing repository's object."""
        target = InMemoryRepository()
        collection = target.add_collection("Theses", handle="123456789/2")
        context = Context(repository=target)

        local = translator.import_name(context, "COLLECTION_hdl:123456789/2_ADMIN")

        assert local == f"COLLECTION_{collection.id}_ADMIN"

    def test_unknown_handle(
        self, translator: GroupNameTranslator, context: Context
    ) -> None:
        """Test an unresolvable handle fails."""
        with pytest.raises(TranslationError):
            translator.import_name(context, "COLLECTION_hdl:999/999_ADMIN")

    def test_plain_name_unchanged(
        self, translator: GroupNameTranslator, context: Context
    ) -> None:
        """Test names without a handle pass through."""
        assert translator.import_name(context, "Editors") == "Editors"
