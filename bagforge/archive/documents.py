"""
XML documents stored inside an AIP.

metadata.xml::

    <metadata>
      <value name="name">Theses</value>
      <value name="license"/>
    </metadata>

policy.xml::

    <policies>
      <policy rp-action="READ" rp-context="Anonymous" rp-in-effect="true">Anonymous</policy>
    </policies>

Empty element text reads back as None, so an empty string and an unset
value are the same on the wire.

Writing fails with ArchiveError when a value holds a character XML 1.0
cannot represent, such as a vertical tab.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from bagforge.core.exceptions import ArchiveError, BagStructureError

METADATA_ROOT = "metadata"
METADATA_VALUE = "value"
POLICY_ROOT = "policies"
POLICY_ELEMENT = "policy"

# Policy entry attribute names
RP_NAME = "rp-name"
RP_DESCRIPTION = "rp-description"
RP_ACTION = "rp-action"
RP_CONTEXT = "rp-context"
RP_IN_EFFECT = "rp-in-effect"
RP_START_DATE = "rp-start-date"
RP_END_DATE = "rp-end-date"

# Characters outside the XML 1.0 Char production
_ILLEGAL_XML_CHARS = re.compile(
    "[^\u0009\u000a\u000d\u0020-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]"
)


def _parse(data: bytes, root_tag: str) -> ET.Element:
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise BagStructureError(f"Malformed {root_tag} document: {e}") from e
    if root.tag != root_tag:
        raise BagStructureError(
            f"Expected <{root_tag}> document, found <{root.tag}>"
        )
    return root


def _checked(value: Optional[str], where: str) -> Optional[str]:
    """Return value unchanged, or raise if XML 1.0 cannot carry it."""
    if value is None:
        return None
    match = _ILLEGAL_XML_CHARS.search(value)
    if match is not None:
        raise ArchiveError(
            f"{where} contains {match.group()!r}, which XML documents cannot hold"
        )
    return value


def _serialize(root: ET.Element) -> bytes:
    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


@dataclass
class MetadataValue:
    name: str
    body: Optional[str] = None


@dataclass
class Metadata:
    """Ordered name/value pairs."""

    values: List[MetadataValue] = field(default_factory=list)

    def add_value(self, name: str, body: Optional[str]) -> "Metadata":
        self.values.append(MetadataValue(name, body))
        return self

    def __iter__(self) -> Iterator[MetadataValue]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {value.name: value.body for value in self.values}

    def to_xml(self) -> bytes:
        root = ET.Element(METADATA_ROOT)
        for value in self.values:
            where = f"Metadata field {value.name!r}"
            element = ET.SubElement(
                root, METADATA_VALUE, {"name": _checked(value.name, where)}
            )
            element.text = _checked(value.body, where) or None
        return _serialize(root)

    @classmethod
    def from_xml(cls, data: bytes) -> "Metadata":
        """
        Parse metadata.xml.

        Value elements without a name attribute are skipped.
        """
        root = _parse(data, METADATA_ROOT)
        metadata = cls()
        for element in root.iter(METADATA_VALUE):
            name = element.get("name")
            if not name:
                continue
            metadata.add_value(name, element.text or None)
        return metadata


@dataclass
class PolicyEntry:
    """One policy element: attributes plus the principal handle as body."""

    body: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)

    def get(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    def set(self, name: str, value: Optional[str]) -> None:
        """Set an attribute; None leaves it out."""
        if value is None:
            self.attributes.pop(name, None)
        else:
            self.attributes[name] = value


@dataclass
class PolicyDocument:
    """Ordered policy entries for one object."""

    entries: List[PolicyEntry] = field(default_factory=list)

    def add_entry(self, entry: PolicyEntry) -> None:
        self.entries.append(entry)

    def __iter__(self) -> Iterator[PolicyEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def to_xml(self) -> bytes:
        root = ET.Element(POLICY_ROOT)
        for entry in self.entries:
            attributes = {
                name: _checked(value, f"Policy attribute {name}")
                for name, value in entry.attributes.items()
            }
            element = ET.SubElement(root, POLICY_ELEMENT, attributes)
            element.text = _checked(entry.body, "Policy principal") or None
        return _serialize(root)

    @classmethod
    def from_xml(cls, data: bytes) -> "PolicyDocument":
        root = _parse(data, POLICY_ROOT)
        document = cls()
        for element in root.iter(POLICY_ELEMENT):
            text = element.text.strip() if element.text else None
            document.add_entry(
                PolicyEntry(body=text or None, attributes=dict(element.attrib))
            )
        return document
