"""Pandas DataFrame adapters for aggregated and windowed rows."""

from typing import Sequence
import pandas as pd  # type: ignore

from sales_analytics.analyses.windows import WindowedRow
from sales_analytics.foundation.aggregation import AggregateRow
from ._utils import decimal_to_float


def aggregates_to_dataframe(rows: Sequence[AggregateRow]) -> pd.DataFrame:
    """Convert aggregate rows to a DataFrame, one column per dimension.

    Args:
        rows: Output of aggregate_sales (all rows share the same dimensions)

    Returns:
        DataFrame with dimension columns followed by measure columns

    Example:
        >>> rows = aggregate_sales(joined, [CATEGORY])
        >>> aggregates_to_dataframe(rows).sort_values('total_sales')
    """
    if not rows:
        return pd.DataFrame()

    records = []
    for row in rows:
        record = dict(zip(row.dimensions, row.key))
        record.update(
            {
                "total_sales": decimal_to_float(row.total_sales),
                "total_quantity": row.total_quantity,
                "total_orders": row.total_orders,
                "line_count": row.line_count,
                "distinct_customers": row.distinct_customers,
                "distinct_products": row.distinct_products,
                "first_order_date": row.first_order_date,
                "last_order_date": row.last_order_date,
            }
        )
        for name, count in row.distinct_counts.items():
            record[f"distinct_{name}"] = count
        for name, average in row.averages.items():
            record[f"avg_{name}"] = decimal_to_float(average)
        records.append(record)
    return pd.DataFrame(records)


def windowed_to_dataframe(rows: Sequence[WindowedRow]) -> pd.DataFrame:
    """Convert windowed rows to a DataFrame.

    Dimension columns come first, then the measure value and every window
    column. Enum labels are stored as their string values.

    Example:
        >>> performance = product_performance(joined)
        >>> windowed_to_dataframe(performance)[['product_name', 'trend']]
    """
    if not rows:
        return pd.DataFrame()

    records = []
    for item in rows:
        record = dict(zip(item.row.dimensions, item.row.key))
        record.update(
            {
                "measure": item.measure,
                "value": decimal_to_float(item.value),
                "running_total": decimal_to_float(item.running_total),
                "partition_avg": decimal_to_float(item.partition_avg),
                "avg_diff": decimal_to_float(item.avg_diff),
                "avg_comparison": item.avg_comparison.value
                if item.avg_comparison
                else None,
                "prior_value": decimal_to_float(item.prior_value),
                "delta": decimal_to_float(item.delta),
                "trend": item.trend.value if item.trend else None,
                "scope_total": decimal_to_float(item.scope_total),
                "percentage_of_total": decimal_to_float(item.percentage_of_total),
            }
        )
        records.append(record)
    return pd.DataFrame(records)
