"""UI utilities for terminal progress display.

This module provides:
- A console UI sink writing through click
- The stage/event logger producing "Started ... / Done ..." progress lines
"""

from microdeck.lib.ui.console import UI, ConsoleUI
from microdeck.lib.ui.stage import EventLogger, SkipStageError, Stage, format_duration

__all__ = [
    "UI",
    "ConsoleUI",
    "EventLogger",
    "SkipStageError",
    "Stage",
    "format_duration",
]
