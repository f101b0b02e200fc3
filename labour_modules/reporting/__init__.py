"""Reporting: accrual labour cost and daily summaries (read-only)."""

from labour_modules.reporting.cost import CostAggregator
from labour_modules.reporting.models import DailyLabourSummary, ProjectLabourCost, WorkerPosition
from labour_modules.reporting.summary import LabourSummarySelector

__all__ = [
    "CostAggregator",
    "DailyLabourSummary",
    "LabourSummarySelector",
    "ProjectLabourCost",
    "WorkerPosition",
]
