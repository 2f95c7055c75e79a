"""
Repository content model and services.

Models, the service interfaces the packers depend on, the in-memory
backend, group name translation and JSON snapshots.
"""

from bagforge.content.constants import Action, ObjectType
from bagforge.content.memory import InMemoryRepository
from bagforge.content.models import (
    COLLECTION_FIELDS,
    Account,
    Bitstream,
    Bundle,
    Collection,
    Community,
    Group,
    Item,
    ResourcePolicy,
)
from bagforge.content.names import GroupNameTranslator

__all__ = [
    "Action",
    "ObjectType",
    "InMemoryRepository",
    "COLLECTION_FIELDS",
    "Account",
    "Bitstream",
    "Bundle",
    "Collection",
    "Community",
    "Group",
    "Item",
    "ResourcePolicy",
    "GroupNameTranslator",
]
