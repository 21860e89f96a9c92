"""Analyses built on aggregated sales.

1. Exploration - headline measures, date coverage, ranking
2. Trends - yearly/monthly activity, cumulative sales, product performance,
   category share
3. Windows - running totals, partition averages, period-over-period change,
   part-to-whole
4. Segmentation - ordered rule sets for customers and product costs
5. Report - consolidated per-customer report
"""

from .exploration import (
    Measure,
    OrderDateSummary,
    RankMethod,
    RankedRow,
    calculate_measures,
    count_nulls,
    distinct_values,
    rank_rows,
    summarize_order_dates,
)
from .report import CustomerReportRow, build_customer_report, compose_customer_row
from .segmentation import (
    Condition,
    CustomerSegment,
    SegmentAssignment,
    SegmentCount,
    SegmentRule,
    SegmentRuleSet,
    cost_rule_set,
    customer_rule_set,
    segment_customers,
    segment_distribution,
    segment_products,
)
from .trends import (
    TrendPoint,
    category_share,
    cumulative_monthly_sales,
    product_performance,
    sales_trend,
)
from .windows import (
    AverageComparison,
    Trend,
    WindowedRow,
    analyze_windows,
    compare_to_partition_average,
    part_to_whole,
    period_over_period,
    running_totals,
)

__all__ = [
    # Exploration
    "Measure",
    "OrderDateSummary",
    "RankMethod",
    "RankedRow",
    "calculate_measures",
    "count_nulls",
    "distinct_values",
    "rank_rows",
    "summarize_order_dates",
    # Report
    "CustomerReportRow",
    "build_customer_report",
    "compose_customer_row",
    # Segmentation
    "Condition",
    "CustomerSegment",
    "SegmentAssignment",
    "SegmentCount",
    "SegmentRule",
    "SegmentRuleSet",
    "cost_rule_set",
    "customer_rule_set",
    "segment_customers",
    "segment_distribution",
    "segment_products",
    # Trends
    "TrendPoint",
    "category_share",
    "cumulative_monthly_sales",
    "product_performance",
    "sales_trend",
    # Windows
    "AverageComparison",
    "Trend",
    "WindowedRow",
    "analyze_windows",
    "compare_to_partition_average",
    "part_to_whole",
    "period_over_period",
    "running_totals",
]
