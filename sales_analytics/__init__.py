"""Descriptive and behavioural analytics over customers, products, and sales.

The pipeline reads a snapshot from a row source, aggregates sales lines,
applies window computations (running totals, partition averages,
period-over-period change, part-to-whole), segments customers and products
with ordered rule sets, and composes a per-customer report.
"""

from .config import AnalyticsConfig
from .foundation.errors import DataAccessError
from .pipeline import AnalyticsResult, run_analytics

__all__ = [
    "AnalyticsConfig",
    "AnalyticsResult",
    "DataAccessError",
    "run_analytics",
]
