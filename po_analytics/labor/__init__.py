"""
Daily aggregation, labor simulation and cohort summaries.
"""

from .aggregate import DailyAggregate, aggregate_daily
from .engine import compute_day, simulate
from .parameters import ProductivityParameters, merge_parameters
from .summary import rebuild_summary

__all__ = [
    "DailyAggregate",
    "ProductivityParameters",
    "aggregate_daily",
    "compute_day",
    "merge_parameters",
    "rebuild_summary",
    "simulate",
]
