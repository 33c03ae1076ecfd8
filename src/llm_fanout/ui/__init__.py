"""User interface components.

This subpackage provides terminal UI and output persistence for runs.

Key modules:
    - tui: Rich-based terminal UI for progress display and summary
    - reporting: On-disk result writer
"""

from .tui import TUI, ModelDisplayState
from .reporting import FileResultWriter, save_output_md

__all__ = [
    "TUI",
    "ModelDisplayState",
    "FileResultWriter",
    "save_output_md",
]
