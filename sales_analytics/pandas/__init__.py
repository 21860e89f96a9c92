"""Pandas DataFrame adapters for sales analytics components."""

from .report import (
    report_to_dataframe,
    build_customer_report_df,
)
from .windows import (
    aggregates_to_dataframe,
    windowed_to_dataframe,
)

__all__ = [
    # Report adapters
    "report_to_dataframe",
    "build_customer_report_df",
    # Aggregate / window adapters
    "aggregates_to_dataframe",
    "windowed_to_dataframe",
]
