"""
Reporting Module
"""
from .aggregator import DashboardAggregator
from .repository import ReportingRepository
from .schemas import DashboardResponse, ErrorResponse
from .windows import TimeFilter, TimeWindow, resolve_window

__all__ = [
    "DashboardAggregator",
    "ReportingRepository",
    "DashboardResponse",
    "ErrorResponse",
    "TimeFilter",
    "TimeWindow",
    "resolve_window",
]
