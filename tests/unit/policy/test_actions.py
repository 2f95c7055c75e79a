"""Tests for the action name table."""

from __future__ import annotations

import pytest

from bagforge.content.constants import Action
from bagforge.policy.actions import ACTION_CODES, ACTION_NAMES, code_for, name_for


class TestActionTable:
    """Tests for code_for / name_for."""

    @pytest.mark.parametrize(
        "name,code",
        [
            ("READ", 0),
            ("WRITE", 1),
            ("DELETE", 2),
            ("ADD", 3),
            ("REMOVE", 4),
            ("READ_BITSTREAM", 9),
            ("READ_ITEM", 10),
            ("ADMIN", 11),
        ],
    )
    def test_known_pairs(self, name: str, code: int) -> None:
        """Test the fixed name/code pairs."""
        assert code_for(name) == code
        assert name_for(code) == name

    def test_names_round_trip(self) -> None:
        """Test every name maps back to itself."""
        for name in ACTION_NAMES:
            assert name_for(code_for(name)) == name

    def test_codes_round_trip(self) -> None:
        """Test every code maps back to itself."""
        for code in ACTION_CODES:
            assert code_for(name_for(code)) == code

    @pytest.mark.parametrize(
        "code",
        [
            Action.WORKFLOW_STEP_1,
            Action.WORKFLOW_STEP_2,
            Action.WORKFLOW_STEP_3,
            Action.WORKFLOW_ABORT,
            -1,
            None,
        ],
    )
    def test_unmapped_codes(self, code) -> None:
        """Test workflow and unknown codes have no name."""
        assert name_for(code) is None

    @pytest.mark.parametrize("name", ["read", "FLY", "", None])
    def test_unmapped_names(self, name) -> None:
        """Test lookups are exact and case-sensitive."""
        assert code_for(name) is None

    def test_accepts_enum_members(self) -> None:
        """Test IntEnum members resolve like plain ints."""
        assert name_for(Action.DEFAULT_ITEM_READ) == "READ_ITEM"

    def test_table_is_read_only(self) -> None:
        """Test the table cannot be modified at runtime."""
        from bagforge.policy import actions

        with pytest.raises(TypeError):
            actions._NAME_TO_CODE["FLY"] = 99
