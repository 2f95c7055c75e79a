"""Persistence-level constants shared by the content model."""

from __future__ import annotations

from enum import Enum, IntEnum


class Action(IntEnum):
    """Action codes stored on resource policies."""

    READ = 0
    WRITE = 1
    DELETE = 2
    ADD = 3
    REMOVE = 4
    WORKFLOW_STEP_1 = 5
    WORKFLOW_STEP_2 = 6
    WORKFLOW_STEP_3 = 7
    WORKFLOW_ABORT = 8
    DEFAULT_BITSTREAM_READ = 9
    DEFAULT_ITEM_READ = 10
    ADMIN = 11


class ObjectType(str, Enum):
    """Kinds of repository objects."""

    BITSTREAM = "bitstream"
    ITEM = "item"
    COLLECTION = "collection"
    COMMUNITY = "community"
