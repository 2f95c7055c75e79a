"""
Repository object packers.

A packer writes one object's archival state into an AIP, restores it, and
estimates its packed size.
"""

from bagforge.pack.base import SIZE_DEFAULT, SIZE_NORECURSE, Packer, archive_name
from bagforge.pack.collection import CollectionPacker
from bagforge.pack.factory import packer_for
from bagforge.pack.item import item_size

__all__ = [
    "SIZE_DEFAULT",
    "SIZE_NORECURSE",
    "Packer",
    "archive_name",
    "CollectionPacker",
    "packer_for",
    "item_size",
]
