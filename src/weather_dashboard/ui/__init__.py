"""Terminal presentation over the dashboard core."""

from .terminal_dashboard import TerminalDashboard

__all__ = ["TerminalDashboard"]
