"""BagIt-style AIP reader.

Extracts an archive written by BagItAipWriter into a scratch directory and
gives access to its tag and payload files. Call clean() (or use the reader
as a context manager) to remove the scratch space.
"""

from __future__ import annotations

import shutil
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional

from bagforge.archive.documents import Metadata, PolicyDocument
from bagforge.archive.writer import (
    BAGIT_FILE,
    CHUNK_SIZE,
    DATA_DIR,
    LOGO_FILE,
    METADATA_FILE,
    OBJFILE,
    POLICY_FILE,
    PROPERTIES_DELIMITER,
)
from bagforge.core.exceptions import ArchiveError, BagStructureError
from bagforge.core.logging import get_logger

logger = get_logger(__name__)


def parse_properties(text: str) -> Dict[str, str]:
    """Parse ``KEY<delimiter>VALUE`` lines. Blank lines are ignored."""
    properties: Dict[str, str] = {}
    for line in text.splitlines():
        if not line.strip():
            continue
        key, _, value = line.partition(PROPERTIES_DELIMITER)
        properties[key.strip()] = value.strip()
    return properties


def normalize_member(name: str) -> Optional[str]:
    """Normalize an archive member path, or None if unsafe.

    Absolute paths and any ``..`` component are rejected.
    """
    if name.startswith("/") or name.startswith("\\"):
        return None
    normalized = name.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    if any(part == ".." for part in normalized.split("/")):
        return None
    return normalized


class BagItAipReader:
    """Read access to one AIP archive."""

    def __init__(self, archive: Path, scratch_dir: Optional[Path] = None) -> None:
        self.archive = Path(archive)
        self.scratch_dir = scratch_dir
        self._workdir: Optional[Path] = None
        self._bag_root: Optional[Path] = None

    def __enter__(self) -> "BagItAipReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.clean()

    # === Extraction ===

    @property
    def bag_root(self) -> Path:
        """Top directory of the extracted bag (extracts on first access)."""
        if self._bag_root is None:
            self._bag_root = self._extract()
        return self._bag_root

    def _extract(self) -> Path:
        if not self.archive.is_file():
            raise ArchiveError(f"Archive not found: {self.archive}")
        if self.scratch_dir is not None:
            self.scratch_dir.mkdir(parents=True, exist_ok=True)
        self._workdir = Path(
            tempfile.mkdtemp(prefix="bagforge-", dir=self.scratch_dir)
        )

        try:
            if zipfile.is_zipfile(self.archive):
                self._extract_zip(self._workdir)
            elif tarfile.is_tarfile(self.archive):
                self._extract_tar(self._workdir)
            else:
                raise BagStructureError(
                    f"Unrecognized archive format: {self.archive.name}"
                )
        except (zipfile.BadZipFile, tarfile.TarError) as e:
            raise BagStructureError(
                f"Corrupt archive {self.archive.name}: {e}"
            ) from e
        except OSError as e:
            raise ArchiveError(f"Failed extracting {self.archive}: {e}") from e

        tops: List[Path] = [p for p in self._workdir.iterdir() if p.is_dir()]
        if len(tops) != 1:
            raise BagStructureError(
                f"Expected one top-level bag directory in {self.archive.name}, "
                f"found {len(tops)}"
            )
        logger.debug("Extracted AIP", archive=self.archive, bag=tops[0].name)
        return tops[0]

    def _extract_zip(self, target_dir: Path) -> None:
        with zipfile.ZipFile(self.archive, "r") as zf:
            for member in zf.infolist():
                if member.is_dir():
                    continue
                with zf.open(member) as src:
                    self._write_member(member.filename, src, target_dir)

    def _extract_tar(self, target_dir: Path) -> None:
        with tarfile.open(self.archive, "r:*") as tf:
            for member in tf:
                if not member.isfile():
                    continue
                src = tf.extractfile(member)
                if src is None:
                    continue
                with src:
                    self._write_member(member.name, src, target_dir)

    def _write_member(self, name: str, src: BinaryIO, target_dir: Path) -> None:
        normalized = normalize_member(name)
        if normalized is None:
            logger.warning("Skipping unsafe archive member", member=name)
            return
        target_path = target_dir / normalized
        target_path.parent.mkdir(parents=True, exist_ok=True)
        with open(target_path, "wb") as dst:
            while chunk := src.read(CHUNK_SIZE):
                dst.write(chunk)

    # === Access ===

    def validate_bag(self) -> None:
        """Check the bag's structure.

        Raises:
            BagStructureError: If bagit.txt declares no version, or
                object.properties or metadata.xml is missing
        """
        root = self.bag_root
        bagit = root / BAGIT_FILE
        if not bagit.is_file():
            raise BagStructureError(f"{BAGIT_FILE} missing from {self.archive.name}")
        declarations = {}
        for line in bagit.read_text(encoding="utf-8").splitlines():
            key, sep, value = line.partition(":")
            if sep:
                declarations[key.strip()] = value.strip()
        if not declarations.get("BagIt-Version"):
            raise BagStructureError(
                f"{BAGIT_FILE} in {self.archive.name} declares no BagIt-Version"
            )

        for required in (OBJFILE, METADATA_FILE):
            if not (root / DATA_DIR / required).is_file():
                raise BagStructureError(
                    f"{required} missing from {self.archive.name}"
                )

    def read_properties(self) -> Dict[str, str]:
        return parse_properties(self._data_file(OBJFILE).read_text(encoding="utf-8"))

    def read_metadata(self) -> Metadata:
        return Metadata.from_xml(self._data_file(METADATA_FILE).read_bytes())

    def read_policy(self) -> PolicyDocument:
        """Policy document of the bag; empty when the bag carries none."""
        path = self.bag_root / DATA_DIR / POLICY_FILE
        if not path.is_file():
            return PolicyDocument()
        return PolicyDocument.from_xml(path.read_bytes())

    def find_logo(self) -> Optional[Path]:
        path = self.bag_root / DATA_DIR / LOGO_FILE
        return path if path.is_file() else None

    def _data_file(self, name: str) -> Path:
        path = self.bag_root / DATA_DIR / name
        if not path.is_file():
            raise BagStructureError(f"{name} missing from {self.archive.name}")
        return path

    def clean(self) -> None:
        """Remove the scratch directory, if any."""
        if self._workdir is not None:
            shutil.rmtree(self._workdir, ignore_errors=True)
            logger.debug("Removed AIP scratch space", path=self._workdir)
        self._workdir = None
        self._bag_root = None
