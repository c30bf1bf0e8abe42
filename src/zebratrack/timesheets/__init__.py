"""Timesheet persistence, remote gateway and aggregation from frames."""

from .store import LocalTimesheetStore

__all__ = ["LocalTimesheetStore"]
