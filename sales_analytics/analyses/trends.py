"""Changes over time, cumulative sales, product performance, and category share.

Each function is a fixed composition of the aggregator and the window
analyzer over already joined sales lines.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from sales_analytics.analyses.windows import (
    WindowedRow,
    compare_to_partition_average,
    part_to_whole,
    period_over_period,
    running_totals,
)
from sales_analytics.foundation.aggregation import (
    CATEGORY,
    ORDER_MONTH,
    PRODUCT_NAME,
    EnrichedSale,
    PeriodGranularity,
    aggregate_sales,
    order_period,
)
from sales_analytics.foundation.entities import SaleLine


@dataclass(frozen=True)
class TrendPoint:
    """Sales activity within one time bucket.

    ``period`` is the order year (``int``) for yearly trends, or the first
    day of the month (``date``) for monthly trends.
    """

    period: int | date
    total_customers: int
    total_quantity: int
    total_sales: Decimal


def sales_trend(
    lines: Iterable[EnrichedSale | SaleLine],
    granularity: PeriodGranularity | str = PeriodGranularity.YEAR,
) -> list[TrendPoint]:
    """Customers, quantity, and revenue per year or month, oldest first.

    Lines without an order date are left out.
    """
    dimension = order_period(granularity)
    return [
        TrendPoint(
            period=row.dimension(dimension.name),
            total_customers=row.distinct_customers,
            total_quantity=row.total_quantity,
            total_sales=row.total_sales,
        )
        for row in aggregate_sales(lines, [dimension])
    ]


def _by_month(row) -> date:
    return row.dimension("order_month")


def cumulative_monthly_sales(lines: Iterable[EnrichedSale | SaleLine]) -> list[WindowedRow]:
    """Monthly sales with a running total across all months."""
    monthly = aggregate_sales(lines, [ORDER_MONTH])
    return running_totals(monthly, order_by=_by_month)


def product_performance(lines: Iterable[EnrichedSale]) -> list[WindowedRow]:
    """Monthly sales per product against its own average and prior month.

    Lines must be joined with products; lines without a product name or an
    order date are left out. Output is ordered by product name, then month.
    """
    monthly = aggregate_sales(lines, [ORDER_MONTH, PRODUCT_NAME])

    def by_product(row) -> str:
        return row.dimension("product_name")

    compared = compare_to_partition_average(
        monthly, partition_by=by_product, order_by=_by_month
    )
    return period_over_period(compared, order_by=_by_month, partition_by=by_product)


def category_share(lines: Iterable[EnrichedSale]) -> list[WindowedRow]:
    """Share of total sales per product category, largest first.

    Ties are ordered by category name.
    """
    by_category = aggregate_sales(lines, [CATEGORY])
    shares = part_to_whole(by_category)
    return sorted(shares, key=lambda item: (-item.value, item.key))
