"""
Collection packer.

Packs a collection's archival state into one AIP and restores it:

    object.properties   bagType / objectType / objectId / ownerId
    metadata.xml        every collection metadata field, in fixed order
    policy.xml          the collection's resource policies
    logo                the collection logo, when it has one

Items are not packed with their collection; size() counts them so callers
can estimate the space needed for a full collection export.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

from bagforge.archive.documents import Metadata
from bagforge.archive.reader import BagItAipReader
from bagforge.archive.writer import BAG_AIP, OBJ_TYPE_COLLECTION, BagItAipWriter
from bagforge.content.models import COLLECTION_FIELDS, Collection
from bagforge.core.context import Context
from bagforge.core.exceptions import (
    ArchiveError,
    BagForgeError,
    BagStructureError,
    MissingArchiveError,
    PackageError,
    UnsupportedOperationError,
)
from bagforge.core.logging import OperationLogger, get_logger
from bagforge.pack.base import (
    BAG_TYPE,
    OBJECT_ID,
    OBJECT_TYPE,
    OWNER_ID,
    SIZE_DEFAULT,
    SIZE_METHODS,
    SIZE_NORECURSE,
    Packer,
    archive_name,
)
from bagforge.pack.item import item_size
from bagforge.policy.codec import PolicyCodec
from bagforge.policy.outcomes import RestoreReport

logger = get_logger(__name__)


class CollectionPacker(Packer):
    """
    Packer for a single collection.

    Args:
        collection: Collection to pack or restore into
        archive_format: "zip" or "tgz"
        strict_actions: Passed to the policy codec; see PolicyCodec
        scratch_dir: Parent directory for staging and extraction
    """

    def __init__(
        self,
        collection: Collection,
        archive_format: str = "zip",
        strict_actions: bool = True,
        scratch_dir: Optional[Path] = None,
        codec: Optional[PolicyCodec] = None,
    ) -> None:
        self.collection = collection
        self.archive_format = archive_format
        self.scratch_dir = scratch_dir
        self.codec = codec or PolicyCodec(strict_actions=strict_actions)

    def pack(self, context: Context, pack_dir: Path) -> Path:
        """
        Write the collection's AIP into pack_dir.

        Returns:
            Path of the archive

        Raises:
            ArchiveError: If policies cannot be encoded or the archive
                cannot be written
        """
        collection = self.collection
        olog = OperationLogger("pack", collection.handle)
        try:
            olog.start_stage("properties")
            properties = self._properties()

            olog.start_stage("metadata")
            metadata = Metadata()
            for field in COLLECTION_FIELDS:
                metadata.add_value(
                    field, context.collections.get_metadata(collection, field)
                )

            olog.start_stage("policies")
            policies = self.codec.to_document(context, collection)

            olog.start_stage("archive")
            writer = BagItAipWriter(
                Path(pack_dir) / archive_name(collection),
                self.archive_format,
                properties,
                scratch_dir=self.scratch_dir,
            )
            writer.with_metadata(metadata).with_policy(policies)
            if collection.logo is not None:
                writer.with_logo(collection.logo)
            archive = writer.package_aip()
        except BagForgeError as e:
            olog.finish(success=False, error=str(e))
            raise

        olog.finish(success=True)
        return archive

    def _properties(self) -> Dict[str, str]:
        properties = {
            BAG_TYPE: BAG_AIP,
            OBJECT_TYPE: OBJ_TYPE_COLLECTION,
            OBJECT_ID: self.collection.handle,
        }
        if self.collection.communities:
            properties[OWNER_ID] = self.collection.communities[0].handle
        return properties

    def unpack(self, context: Context, archive: Optional[Path]) -> RestoreReport:
        """
        Restore the collection from an archive.

        Metadata is applied field by field, the policy set is replaced as a
        whole, then the logo is replaced when the archive has one. All three
        run in one transaction, so a failure leaves the collection as it was.

        Returns:
            RestoreReport of the policy restore

        Raises:
            MissingArchiveError: If the archive does not exist
            BagStructureError: If the archive is not a valid collection bag
            ArchiveError: If policies cannot be restored; the cause is the
                underlying PackageError
        """
        collection = self.collection
        if archive is None or not Path(archive).exists():
            raise MissingArchiveError(
                f"Missing archive for collection: {collection.handle}"
            )

        olog = OperationLogger("unpack", collection.handle)
        reader = BagItAipReader(Path(archive), scratch_dir=self.scratch_dir)
        try:
            olog.start_stage("validate")
            reader.validate_bag()
            self._check_properties(reader.read_properties())

            with context.transaction():
                olog.start_stage("metadata")
                self._restore_metadata(context, reader.read_metadata())

                olog.start_stage("policies")
                try:
                    report = self.codec.register_policies(
                        context, collection, reader.read_policy()
                    )
                except PackageError as e:
                    raise ArchiveError(
                        f"Failed restoring policies of collection "
                        f"{collection.handle}: {e}"
                    ) from e

                olog.start_stage("logo")
                logo = reader.find_logo()
                if logo is not None:
                    try:
                        with open(logo, "rb") as stream:
                            context.collections.set_logo(context, collection, stream)
                    except OSError as e:
                        raise ArchiveError(f"Failed reading logo: {e}") from e

                context.collections.update(context, collection)
        except BagForgeError as e:
            olog.finish(success=False, error=str(e))
            raise
        finally:
            reader.clean()

        olog.finish(success=True)
        return report

    def _check_properties(self, properties: Dict[str, str]) -> None:
        object_type = properties.get(OBJECT_TYPE)
        if object_type != OBJ_TYPE_COLLECTION:
            raise BagStructureError(
                f"Archive holds a {object_type or 'untyped'} object, "
                f"not a collection"
            )
        if properties.get(OBJECT_ID) != self.collection.handle:
            logger.info(
                "Restoring archive of another handle",
                handle=self.collection.handle,
                archived=properties.get(OBJECT_ID),
            )

    def _restore_metadata(self, context: Context, metadata: Metadata) -> None:
        for value in metadata:
            if value.name not in COLLECTION_FIELDS:
                logger.warning(
                    "Skipping unknown metadata field",
                    handle=self.collection.handle,
                    field=value.name,
                )
                continue
            context.collections.set_metadata(
                context, self.collection, value.name, value.body
            )

    def size(self, context: Context, method: str = SIZE_DEFAULT) -> int:
        """
        Estimated size in bytes: the logo, plus every item of the collection
        unless method is "norecurse".

        Raises:
            UnsupportedOperationError: If method is not a known size method
        """
        if method not in SIZE_METHODS:
            raise UnsupportedOperationError(
                f"Unknown size method {method!r}, expected one of {SIZE_METHODS}"
            )

        logo = self.collection.logo
        total = (logo.size or 0) if logo is not None else 0
        if method == SIZE_NORECURSE:
            return total

        for item in context.items.find_items_by_collection(context, self.collection):
            total += item_size(item, method)
        return total

    def set_content_filter(self, filter_name: str) -> None:
        """Accepted for interface compatibility; collections pack no content."""
        logger.debug("Ignoring content filter", filter=filter_name)

    def set_reference_filter(self, filter_name: str) -> None:
        raise UnsupportedOperationError(
            f"Reference filters are not supported by {type(self).__name__}: "
            f"{filter_name}"
        )
