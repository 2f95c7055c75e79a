"""bagforge - Archival packages for repository collections.

Packs a collection's metadata, logo and access policies into a BagIt AIP
and restores them, preserving each policy's principal and time window.
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
