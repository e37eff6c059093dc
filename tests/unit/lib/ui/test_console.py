"""Unit tests for the click-backed console UI."""

import pytest

from microdeck.lib.ui.console import ConsoleUI


@pytest.mark.unit
class TestConsoleUI:
    """Tests for ConsoleUI."""

    def test_print_string_has_no_newline(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        ui = ConsoleUI()

        ui.print_string("Started step...")
        ui.print_line(" done.")

        assert capsys.readouterr().out == "Started step... done.\n"

    def test_quiet_suppresses_progress(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        ui = ConsoleUI(quiet=True)

        ui.print_string("a")
        ui.print_line("b")
        ui.error_line("boom")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "boom" in captured.err
