"""Size estimation for items."""

from __future__ import annotations

from bagforge.content.models import Item


def item_size(item: Item, method: str = "default") -> int:
    """Total size of all bitstreams in all of the item's bundles.

    ``method`` is accepted for parity with Packer.size(); every method
    counts the same bytes for an item.
    """
    return sum(
        bitstream.size or 0
        for bundle in item.bundles
        for bitstream in bundle.bitstreams
    )
