"""Timesheet synchronization with Zebra."""

from .engine import PendingDelete, PendingUpdate, PushResult, TimesheetSyncEngine

__all__ = ["PendingDelete", "PendingUpdate", "PushResult", "TimesheetSyncEngine"]
