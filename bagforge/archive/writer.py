"""BagIt-style AIP writer.

Stages a bag in a scratch directory and packs it into a single zip or
gzipped tar archive. The archive is written under a temporary name and
only renamed into place once complete, so a failed pack never leaves a
truncated archive behind.

Bag layout (``<name>`` is the archive stem)::

    <name>/bagit.txt
    <name>/bag-info.txt
    <name>/data/object.properties
    <name>/data/metadata.xml
    <name>/data/policy.xml      optional
    <name>/data/logo            optional
"""

from __future__ import annotations

import os
import shutil
import tarfile
import tempfile
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from bagforge.archive.documents import Metadata, PolicyDocument
from bagforge.content.models import Bitstream
from bagforge.core.exceptions import ArchiveError
from bagforge.core.logging import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1MB streaming chunks

BAGIT_VERSION = "0.97"
BAGIT_FILE = "bagit.txt"
BAG_INFO_FILE = "bag-info.txt"
DATA_DIR = "data"
OBJFILE = "object.properties"
METADATA_FILE = "metadata.xml"
POLICY_FILE = "policy.xml"
LOGO_FILE = "logo"

BAG_AIP = "AIP"
OBJ_TYPE_COLLECTION = "collection"
PROPERTIES_DELIMITER = "  "

ARCHIVE_SUFFIXES = {"zip": ".zip", "tgz": ".tgz"}


def archive_path_for(bag_dir: Path, archive_format: str) -> Path:
    """Path of the archive produced for a bag directory."""
    try:
        suffix = ARCHIVE_SUFFIXES[archive_format]
    except KeyError:
        raise ValueError(f"Unsupported archive format: {archive_format}") from None
    return bag_dir.with_name(bag_dir.name + suffix)


def format_properties(properties: Dict[str, str]) -> str:
    """Render properties as ``KEY<delimiter>VALUE`` lines."""
    return "".join(
        f"{key}{PROPERTIES_DELIMITER}{value}\n" for key, value in properties.items()
    )


class BagItAipWriter:
    """Assembles one AIP archive.

    Example:
        >>> writer = BagItAipWriter(out / "COLLECTION@123456789-2", "zip", props)
        >>> archive = writer.with_metadata(metadata).with_policy(policies).package_aip()
    """

    def __init__(
        self,
        bag_dir: Path,
        archive_format: str,
        properties: Dict[str, str],
        scratch_dir: Optional[Path] = None,
    ) -> None:
        """Initialize writer.

        Args:
            bag_dir: Target bag path; the archive is written beside it with
                the format's suffix
            archive_format: "zip" or "tgz"
            properties: Identity/ownership properties, in output order
            scratch_dir: Parent for the staging directory (system temp if None)
        """
        self.bag_dir = Path(bag_dir)
        self.archive_format = archive_format
        self.archive_path = archive_path_for(self.bag_dir, archive_format)
        self.properties = dict(properties)
        self.scratch_dir = scratch_dir
        self._metadata: Optional[Metadata] = None
        self._policy: Optional[PolicyDocument] = None
        self._logo: Optional[Bitstream] = None

    def with_logo(self, logo: Bitstream) -> "BagItAipWriter":
        self._logo = logo
        return self

    def with_policy(self, document: PolicyDocument) -> "BagItAipWriter":
        self._policy = document
        return self

    def with_metadata(self, metadata: Metadata) -> "BagItAipWriter":
        self._metadata = metadata
        return self

    def package_aip(self) -> Path:
        """Write the archive.

        Returns:
            Path of the finished archive

        Raises:
            ArchiveError: If no metadata was attached or writing fails
        """
        if self._metadata is None:
            raise ArchiveError(f"No metadata attached for {self.bag_dir.name}")

        if self.scratch_dir is not None:
            self.scratch_dir.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix="bagforge-", dir=self.scratch_dir))
        partial = self.archive_path.with_name(self.archive_path.name + ".partial")
        try:
            bag_root = staging / self.bag_dir.name
            self._stage_bag(bag_root)
            self.archive_path.parent.mkdir(parents=True, exist_ok=True)
            if self.archive_format == "zip":
                self._write_zip(bag_root, partial)
            else:
                self._write_tgz(bag_root, partial)
            os.replace(partial, self.archive_path)
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise ArchiveError(
                f"Failed writing archive {self.archive_path}: {e}"
            ) from e
        finally:
            shutil.rmtree(staging, ignore_errors=True)

        logger.info(
            "Wrote AIP",
            path=self.archive_path,
            size=self.archive_path.stat().st_size,
        )
        return self.archive_path

    def _stage_bag(self, bag_root: Path) -> None:
        data = bag_root / DATA_DIR
        data.mkdir(parents=True)

        (bag_root / BAGIT_FILE).write_text(
            f"BagIt-Version: {BAGIT_VERSION}\n"
            "Tag-File-Character-Encoding: UTF-8\n",
            encoding="utf-8",
        )
        (bag_root / BAG_INFO_FILE).write_text(
            f"Bagging-Date: {datetime.now().date().isoformat()}\n"
            f"External-Identifier: {self.properties.get('objectId', '')}\n",
            encoding="utf-8",
        )
        (data / OBJFILE).write_text(
            format_properties(self.properties), encoding="utf-8"
        )
        (data / METADATA_FILE).write_bytes(self._metadata.to_xml())
        if self._policy is not None:
            (data / POLICY_FILE).write_bytes(self._policy.to_xml())
        if self._logo is not None:
            with self._logo.open() as src, open(data / LOGO_FILE, "wb") as dst:
                while chunk := src.read(CHUNK_SIZE):
                    dst.write(chunk)

    def _write_zip(self, bag_root: Path, target: Path) -> None:
        with zipfile.ZipFile(target, "w", zipfile.ZIP_DEFLATED) as zf:
            for path in sorted(bag_root.rglob("*")):
                if path.is_file():
                    zf.write(path, path.relative_to(bag_root.parent).as_posix())

    def _write_tgz(self, bag_root: Path, target: Path) -> None:
        with tarfile.open(target, "w:gz") as tf:
            tf.add(bag_root, arcname=bag_root.name)
