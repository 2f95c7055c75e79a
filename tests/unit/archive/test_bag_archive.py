"""Tests for the BagIt AIP writer and reader."""

from __future__ import annotations

import tarfile
import zipfile
from pathlib import Path
from unittest.mock import patch

import pytest

from bagforge.archive.documents import Metadata, PolicyDocument, PolicyEntry
from bagforge.archive.reader import BagItAipReader, normalize_member, parse_properties
from bagforge.archive.writer import (
    BagItAipWriter,
    archive_path_for,
    format_properties,
)
from bagforge.content.models import Bitstream
from bagforge.core.exceptions import ArchiveError, BagStructureError

PROPERTIES = {
    "bagType": "AIP",
    "objectType": "collection",
    "objectId": "123456789/2",
    "ownerId": "123456789/1",
}


def _metadata() -> Metadata:
    return Metadata().add_value("name", "Theses").add_value("license", None)


def _policy() -> PolicyDocument:
    return PolicyDocument(
        [
            PolicyEntry(
                body="Anonymous",
                attributes={"rp-action": "READ", "rp-context": "Anonymous"},
            )
        ]
    )


def _write(tmp_path: Path, archive_format: str = "zip", **parts) -> Path:
    writer = BagItAipWriter(
        tmp_path / "out" / "COLLECTION@123456789-2",
        archive_format,
        PROPERTIES,
        scratch_dir=tmp_path / "scratch",
    )
    writer.with_metadata(parts.get("metadata", _metadata()))
    if "policy" in parts:
        writer.with_policy(parts["policy"])
    if "logo" in parts:
        writer.with_logo(parts["logo"])
    return writer.package_aip()


def _zip(path: Path, members: dict) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return path


VALID_BAG = {
    "bag/bagit.txt": "BagIt-Version: 0.97\n",
    "bag/data/object.properties": "objectId  1/1\n",
    "bag/data/metadata.xml": "<metadata/>",
}


class TestProperties:
    """Tests for object.properties formatting."""

    def test_two_space_delimiter(self) -> None:
        """Test keys and values are separated by two spaces."""
        text = format_properties({"bagType": "AIP", "objectId": "1/2"})

        assert text == "bagType  AIP\nobjectId  1/2\n"

    def test_parse(self) -> None:
        """Test parsing ignores blank lines."""
        assert parse_properties("bagType  AIP\n\nownerId  1/1\n") == {
            "bagType": "AIP",
            "ownerId": "1/1",
        }

    def test_archive_path_for(self, tmp_path: Path) -> None:
        """Test the format suffix is appended to the bag name."""
        bag = tmp_path / "COLLECTION@1-2"

        assert archive_path_for(bag, "tgz").name == "COLLECTION@1-2.tgz"
        with pytest.raises(ValueError):
            archive_path_for(bag, "rar")


class TestNormalizeMember:
    """Tests for archive member path checks."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("bag/data/logo", "bag/data/logo"),
            ("./bag/bagit.txt", "bag/bagit.txt"),
            ("bag\\data\\logo", "bag/data/logo"),
            ("/etc/passwd", None),
            ("bag/../../escape", None),
            ("..", None),
        ],
    )
    def test_normalize(self, name: str, expected) -> None:
        """Test safe paths are normalized and unsafe ones rejected."""
        assert normalize_member(name) == expected


class TestRoundTrip:
    """Tests writing then reading an AIP."""

    @pytest.mark.parametrize("archive_format", ["zip", "tgz"])
    def test_all_parts(self, tmp_path: Path, archive_format: str) -> None:
        """Test properties, metadata, policy and logo survive both formats."""
        archive = _write(
            tmp_path,
            archive_format,
            policy=_policy(),
            logo=Bitstream("logo.png", b"\x89PNG" * 10),
        )

        with BagItAipReader(archive, scratch_dir=tmp_path / "scratch") as reader:
            reader.validate_bag()
            assert reader.read_properties() == PROPERTIES
            assert reader.read_metadata().as_dict() == {
                "name": "Theses",
                "license": None,
            }
            assert [e.body for e in reader.read_policy()] == ["Anonymous"]
            assert reader.find_logo().read_bytes() == b"\x89PNG" * 10

    def test_archive_name(self, tmp_path: Path) -> None:
        """Test the archive is written beside the bag path with its suffix."""
        archive = _write(tmp_path, "tgz")

        assert archive == tmp_path / "out" / "COLLECTION@123456789-2.tgz"
        assert tarfile.is_tarfile(archive)

    def test_bag_layout(self, tmp_path: Path) -> None:
        """Test members live under one top directory named after the bag."""
        archive = _write(tmp_path, policy=_policy())

        with zipfile.ZipFile(archive) as zf:
            names = set(zf.namelist())

        assert names == {
            "COLLECTION@123456789-2/bagit.txt",
            "COLLECTION@123456789-2/bag-info.txt",
            "COLLECTION@123456789-2/data/object.properties",
            "COLLECTION@123456789-2/data/metadata.xml",
            "COLLECTION@123456789-2/data/policy.xml",
        }

    def test_optional_parts_absent(self, tmp_path: Path) -> None:
        """Test a bag without policy or logo reads back empty."""
        archive = _write(tmp_path)

        with BagItAipReader(archive) as reader:
            reader.validate_bag()
            assert len(reader.read_policy()) == 0
            assert reader.find_logo() is None

    def test_scratch_cleaned(self, tmp_path: Path) -> None:
        """Test staging and extraction directories are removed."""
        archive = _write(tmp_path)
        reader = BagItAipReader(archive, scratch_dir=tmp_path / "scratch")
        reader.validate_bag()

        reader.clean()

        assert list((tmp_path / "scratch").iterdir()) == []


class TestWriterErrors:
    """Tests for writer failures."""

    def test_metadata_required(self, tmp_path: Path) -> None:
        """Test a bag cannot be written without metadata."""
        writer = BagItAipWriter(tmp_path / "bag", "zip", PROPERTIES)

        with pytest.raises(ArchiveError):
            writer.package_aip()

    def test_failed_write_leaves_nothing(self, tmp_path: Path) -> None:
        """Test an I/O failure leaves no archive or partial file."""
        with patch.object(
            BagItAipWriter, "_write_zip", side_effect=OSError("disk full")
        ):
            with pytest.raises(ArchiveError, match="disk full"):
                _write(tmp_path)

        assert list((tmp_path / "out").iterdir()) == []
        assert list((tmp_path / "scratch").iterdir()) == []


class TestReaderErrors:
    """Tests for invalid archives."""

    def test_missing_archive(self, tmp_path: Path) -> None:
        """Test a missing file is an ArchiveError."""
        with pytest.raises(ArchiveError):
            BagItAipReader(tmp_path / "nope.zip").validate_bag()

    def test_not_an_archive(self, tmp_path: Path) -> None:
        """Test an arbitrary file is rejected."""
        path = tmp_path / "plain.zip"
        path.write_text("not an archive")

        with BagItAipReader(path) as reader:
            with pytest.raises(BagStructureError):
                reader.validate_bag()

    def test_valid_minimal_bag(self, tmp_path: Path) -> None:
        """Test a hand-built bag with only the required files validates."""
        archive = _zip(tmp_path / "bag.zip", VALID_BAG)

        with BagItAipReader(archive) as reader:
            reader.validate_bag()
            assert reader.read_properties() == {"objectId": "1/1"}

    @pytest.mark.parametrize(
        "missing",
        ["bag/bagit.txt", "bag/data/object.properties", "bag/data/metadata.xml"],
    )
    def test_required_file_missing(self, tmp_path: Path, missing: str) -> None:
        """Test each required file is checked."""
        members = {k: v for k, v in VALID_BAG.items() if k != missing}
        archive = _zip(tmp_path / "bag.zip", members)

        with BagItAipReader(archive) as reader:
            with pytest.raises(BagStructureError):
                reader.validate_bag()

    def test_bagit_without_version(self, tmp_path: Path) -> None:
        """Test bagit.txt must declare a version."""
        archive = _zip(
            tmp_path / "bag.zip", {**VALID_BAG, "bag/bagit.txt": "Encoding: UTF-8\n"}
        )

        with BagItAipReader(archive) as reader:
            with pytest.raises(BagStructureError, match="BagIt-Version"):
                reader.validate_bag()

    def test_two_top_directories(self, tmp_path: Path) -> None:
        """Test an archive must hold exactly one bag."""
        archive = _zip(tmp_path / "bag.zip", {**VALID_BAG, "other/file.txt": "x"})

        with BagItAipReader(archive) as reader:
            with pytest.raises(BagStructureError, match="found 2"):
                reader.validate_bag()

    def test_unsafe_member_skipped(self, tmp_path: Path) -> None:
        """Test a traversal member is not written outside the scratch space."""
        scratch = tmp_path / "scratch"
        archive = _zip(
            tmp_path / "bag.zip", {**VALID_BAG, "../../escaped.txt": "gotcha"}
        )

        with BagItAipReader(archive, scratch_dir=scratch) as reader:
            reader.validate_bag()

        assert not (tmp_path / "escaped.txt").exists()
        assert not (scratch.parent / "escaped.txt").exists()
