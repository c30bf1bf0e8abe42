"""Time report aggregation."""

from .aggregator import (
    NO_ISSUE_KEY,
    IssueKeyGroup,
    IssueKeyReport,
    Report,
    ReportAggregator,
)

__all__ = [
    "NO_ISSUE_KEY",
    "IssueKeyGroup",
    "IssueKeyReport",
    "Report",
    "ReportAggregator",
]
