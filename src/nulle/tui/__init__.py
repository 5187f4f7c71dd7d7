"""Interactive terminal UI for null-e (requires the ``tui`` extra)."""

from nulle.tui.app import NullEApp, run_tui

__all__ = ["NullEApp", "run_tui"]
