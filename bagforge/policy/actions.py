"""
Symbolic names for policy action codes.

Policy documents carry actions by name (``rp-action="READ"``) while the
repository stores integer codes (bagforge.content.constants.Action). The
table below is the fixed bijection between the two. Workflow codes have no
symbolic name and cannot be exported.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from bagforge.content.constants import Action

_NAME_TO_CODE: Mapping[str, int] = MappingProxyType(
    {
        "ADD": Action.ADD.value,
        "READ": Action.READ.value,
        "ADMIN": Action.ADMIN.value,
        "WRITE": Action.WRITE.value,
        "DELETE": Action.DELETE.value,
        "REMOVE": Action.REMOVE.value,
        "READ_ITEM": Action.DEFAULT_ITEM_READ.value,
        "READ_BITSTREAM": Action.DEFAULT_BITSTREAM_READ.value,
    }
)

_CODE_TO_NAME: Mapping[int, str] = MappingProxyType(
    {code: name for name, code in _NAME_TO_CODE.items()}
)

assert len(_CODE_TO_NAME) == len(_NAME_TO_CODE), "action table must be a bijection"

ACTION_NAMES: Tuple[str, ...] = tuple(_NAME_TO_CODE)
ACTION_CODES: Tuple[int, ...] = tuple(_CODE_TO_NAME)


def code_for(name: Optional[str]) -> Optional[int]:
    """Return the action code for a symbolic name, or None if unmapped."""
    if name is None:
        return None
    return _NAME_TO_CODE.get(name)


def name_for(code: Optional[int]) -> Optional[str]:
    """Return the symbolic name for an action code, or None if unmapped."""
    if code is None:
        return None
    return _CODE_TO_NAME.get(int(code))
