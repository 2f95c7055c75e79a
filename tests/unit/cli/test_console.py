"""
Tests for console output helpers and ErrorRenderer.

Organization
------------
- TestVerboseMode: verbose flag toggle
- TestPrintHelpers: status prefixes
- TestErrorRenderer: panel rendering and tracebacks
"""

from __future__ import annotations

import pytest

from bagforge.cli import console
from bagforge.cli.console import (
    ErrorRenderer,
    is_verbose_mode,
    print_success,
    print_warning,
    set_verbose_mode,
)
from bagforge.core.exceptions import ArchiveError, MissingArchiveError, TranslationError


@pytest.fixture(autouse=True)
def quiet_mode():
    """Reset verbose mode around each test."""
    set_verbose_mode(False)
    yield
    set_verbose_mode(False)


class TestVerboseMode:
    """Tests for the verbose flag."""

    def test_default_off(self):
        """Test verbose mode starts disabled."""
        assert is_verbose_mode() is False

    def test_toggle(self):
        """Test verbose mode can be switched on and off."""
        set_verbose_mode(True)
        assert is_verbose_mode() is True

        set_verbose_mode(False)
        assert is_verbose_mode() is False


class TestPrintHelpers:
    """Tests for the status print helpers."""

    def test_prefixes(self, capsys):
        """Test each helper prints its bracketed status."""
        print_success("packed")
        print_warning("careful")

        out = capsys.readouterr().out
        assert "[OK] packed" in out
        assert "[WARN] careful" in out

    def test_shared_console(self):
        """Test the console instance is reused."""
        assert console.get_console() is console.get_console()


class TestErrorRenderer:
    """Tests for ErrorRenderer.render."""

    def test_panel_shows_code_and_fix(self, capsys):
        """Test the error code, message and hints are rendered."""
        error = MissingArchiveError("Missing archive for collection: 123456789/2")

        ErrorRenderer.render(error, context="While restoring 123456789/2")

        out = capsys.readouterr().out
        assert error.error_code in out
        assert "Missing archive" in out
        assert "While restoring" in out
        assert error.how_to_fix[0][:20] in out

    def test_root_cause_shown(self, capsys):
        """Test a wrapped cause is reported."""
        try:
            try:
                raise TranslationError("No collection with handle 999/1")
            except TranslationError as e:
                raise ArchiveError("Cannot write policies") from e
        except ArchiveError as e:
            ErrorRenderer.render(e)

        out = capsys.readouterr().out
        assert "Root cause" in out
        assert "999/1" in out

    def test_no_traceback_by_default(self, capsys):
        """Test tracebacks are hidden unless verbose."""
        ErrorRenderer.render(ArchiveError("boom"))

        assert "Traceback" not in capsys.readouterr().out

    def test_traceback_when_verbose(self, capsys):
        """Test verbose mode prints the traceback."""
        set_verbose_mode(True)

        try:
            raise ArchiveError("boom")
        except ArchiveError as e:
            ErrorRenderer.render(e)

        assert "Traceback" in capsys.readouterr().out

    def test_plain_exception(self, capsys):
        """Test non-bagforge errors fall back to generic help."""
        ErrorRenderer.render(ValueError("odd"))

        assert "BF-ERR-999" in capsys.readouterr().out
