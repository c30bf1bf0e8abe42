"""zebratrack - personal time tracking with Zebra timesheet sync."""

__version__ = "0.1.0"
