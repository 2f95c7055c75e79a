"""
Archive containers for AIPs.

Writes and reads BagIt-style bags packed as zip or gzipped tar archives,
plus the XML documents stored inside them.
"""

from bagforge.archive.documents import (
    Metadata,
    MetadataValue,
    PolicyDocument,
    PolicyEntry,
)
from bagforge.archive.reader import BagItAipReader
from bagforge.archive.writer import BagItAipWriter

__all__ = [
    "BagItAipReader",
    "BagItAipWriter",
    "Metadata",
    "MetadataValue",
    "PolicyDocument",
    "PolicyEntry",
]
