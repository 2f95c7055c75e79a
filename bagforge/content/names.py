"""
Group name translation between repositories.

Groups created for a community or collection embed the object's internal
id in their name, e.g. ``COLLECTION_<uuid>_SUBMIT``. Internal ids mean
nothing in another repository, so on export the id is replaced by the
object's handle (``COLLECTION_hdl:123456789/10_SUBMIT``) and on import the
handle is resolved back to the local object's id.

Names that do not follow the pattern are returned unchanged.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from bagforge.content.constants import ObjectType
from bagforge.core.exceptions import TranslationError
from bagforge.core.logging import get_logger

if TYPE_CHECKING:
    from bagforge.core.context import Context

logger = get_logger(__name__)

HANDLE_MARKER = "hdl:"

_INTERNAL_NAME = re.compile(r"^(COMMUNITY|COLLECTION)_([^_:]+)_(.+)$")
_EXPORTED_NAME = re.compile(r"^(COMMUNITY|COLLECTION)_hdl:([^_]+)_(.+)$")


class GroupNameTranslator:
    """Rewrites object-bound group names for export and import."""

    def export_name(self, context: "Context", group_name: str) -> str:
        """
        Translate a local group name into its portable form.

        Raises:
            TranslationError: If the embedded object does not exist or has
                no handle.
        """
        match = _INTERNAL_NAME.match(group_name)
        if not match:
            return group_name

        type_name, object_id, suffix = match.groups()
        object_type = ObjectType(type_name.lower())
        dso = context.handles.find_object(context, object_type, object_id)
        if dso is None:
            raise TranslationError(
                f"Cannot export group {group_name}: no {object_type.value} "
                f"with id {object_id}"
            )
        if not dso.handle:
            raise TranslationError(
                f"Cannot export group {group_name}: {object_type.value} "
                f"{object_id} has no handle"
            )

        exported = f"{type_name}_{HANDLE_MARKER}{dso.handle}_{suffix}"
        logger.debug("Exported group name", local=group_name, exported=exported)
        return exported

    def import_name(self, context: "Context", group_name: str) -> str:
        """
        Translate a portable group name into the local form.

        Raises:
            TranslationError: If the handle does not resolve to an object of
                the named type.
        """
        match = _EXPORTED_NAME.match(group_name)
        if not match:
            return group_name

        type_name, handle, suffix = match.groups()
        object_type = ObjectType(type_name.lower())
        dso = context.handles.resolve_handle(context, handle)
        if dso is None or dso.object_type is not object_type:
            raise TranslationError(
                f"Cannot import group {group_name}: handle {handle} does not "
                f"resolve to a {object_type.value}"
            )

        local = f"{type_name}_{dso.id}_{suffix}"
        logger.debug("Imported group name", exported=group_name, local=local)
        return local
