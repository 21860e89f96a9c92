"""Exploratory metrics over the sales schema.

Headline KPIs, date coverage, categorical dimension values, null counts, and
ranking of aggregated rows (top/bottom N).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Sequence

from sales_analytics.foundation.aggregation import (
    ORDER_MONTH,
    AggregateRow,
    aggregate_sales,
    months_between,
    null_safe_key,
    safe_divide,
)
from sales_analytics.foundation.entities import Customer, Product, SaleLine


@dataclass(frozen=True)
class Measure:
    """A named headline KPI."""

    name: str
    value: Decimal | int


def calculate_measures(
    sales: Sequence[SaleLine],
    products: Sequence[Product],
    customers: Sequence[Customer],
) -> list[Measure]:
    """Headline KPIs as an ordered list of measures.

    ``avg_price`` is the mean of non-null line prices (0 with no prices);
    ``total_orders`` counts distinct order numbers; ``total_products``
    counts distinct product names.
    """
    prices = [line.price for line in sales if line.price is not None]
    total_sales = sum(
        (line.sales_amount for line in sales if line.sales_amount is not None),
        Decimal("0"),
    )
    return [
        Measure("total_sales", total_sales),
        Measure(
            "total_quantity",
            sum(line.quantity for line in sales if line.quantity is not None),
        ),
        Measure("avg_price", safe_divide(sum(prices, Decimal("0")), len(prices))),
        Measure("total_orders", len({line.order_number for line in sales})),
        Measure(
            "total_products",
            len({product.name for product in products if product.name is not None}),
        ),
        Measure("total_customers", len(customers)),
        Measure("customers_with_orders", len({line.customer_key for line in sales})),
    ]


@dataclass(frozen=True)
class OrderDateSummary:
    """Coverage of the order history.

    ``highest_month``/``lowest_month`` are the first days of the months with
    the highest and lowest total sales; ties go to the earlier month.
    All fields are ``None`` (ranges 0) when no line has an order date.
    """

    first_order_date: date | None
    last_order_date: date | None
    range_years: int
    range_months: int
    highest_month: date | None
    highest_month_sales: Decimal | None
    lowest_month: date | None
    lowest_month_sales: Decimal | None


def summarize_order_dates(sales: Iterable[SaleLine]) -> OrderDateSummary:
    sales = list(sales)
    dates = [line.order_date for line in sales if line.order_date is not None]
    if not dates:
        return OrderDateSummary(None, None, 0, 0, None, None, None, None)

    first, last = min(dates), max(dates)
    range_months = months_between(first, last)
    monthly = aggregate_sales(sales, [ORDER_MONTH])
    # rows are already in month order, so min/max keep the earliest month on ties
    highest = max(monthly, key=lambda row: row.total_sales)
    lowest = min(monthly, key=lambda row: row.total_sales)
    return OrderDateSummary(
        first_order_date=first,
        last_order_date=last,
        range_years=range_months // 12,
        range_months=range_months,
        highest_month=highest.dimension("order_month"),
        highest_month_sales=highest.total_sales,
        lowest_month=lowest.dimension("order_month"),
        lowest_month_sales=lowest.total_sales,
    )


def distinct_values(records: Iterable[Any], attribute: str) -> list[Any]:
    """Sorted distinct non-null values of an attribute (e.g. product categories)."""
    values = {getattr(record, attribute) for record in records}
    values.discard(None)
    return sorted(values)


def count_nulls(records: Iterable[Any], attribute: str) -> int:
    """Number of records whose attribute is null."""
    return sum(1 for record in records if getattr(record, attribute) is None)


class RankMethod(str, Enum):
    """SQL ranking semantics."""

    DENSE = "dense"  # DENSE_RANK: ties share a rank, no gaps
    RANK = "rank"  # RANK: ties share a rank, gaps after ties
    ROW_NUMBER = "row_number"  # ROW_NUMBER: unique consecutive ranks


@dataclass(frozen=True)
class RankedRow:
    """An aggregate row with its rank on a measure."""

    rank: int
    value: Decimal | int
    row: AggregateRow


def rank_rows(
    rows: Iterable[AggregateRow],
    measure: str = "total_sales",
    method: RankMethod | str = RankMethod.DENSE,
    descending: bool = True,
    limit: int | None = None,
) -> list[RankedRow]:
    """Rank aggregate rows by a measure.

    Rows with equal values are ordered by group key ascending, which also
    decides their order under ``ROW_NUMBER``. ``limit`` keeps the first N
    rows after ranking (top N when descending, bottom N when ascending).

    Examples
    --------
    >>> from decimal import Decimal
    >>> def product_row(key, sales):
    ...     return AggregateRow(("product_key",), (key,), Decimal(sales), 1, 1, 1, 1, 1)
    >>> rows = [product_row(1, 50), product_row(2, 80), product_row(3, 80), product_row(4, 10)]
    >>> [(r.rank, r.row.key[0]) for r in rank_rows(rows, method="dense")]
    [(1, 2), (1, 3), (2, 1), (3, 4)]
    >>> [(r.rank, r.row.key[0]) for r in rank_rows(rows, method="rank")]
    [(1, 2), (1, 3), (3, 1), (4, 4)]
    """
    method = RankMethod(method)
    if limit is not None and limit < 0:
        raise ValueError(f"limit cannot be negative: {limit}")

    valued = [(row.measure(measure), row) for row in rows]
    valued = [(Decimal("0") if value is None else value, row) for value, row in valued]
    valued.sort(key=lambda item: null_safe_key(item[1].key))
    valued.sort(key=lambda item: item[0], reverse=descending)

    ranked: list[RankedRow] = []
    previous = None
    rank = 0
    for position, (value, row) in enumerate(valued, start=1):
        if method is RankMethod.ROW_NUMBER:
            rank = position
        elif position == 1 or value != previous:
            rank = rank + 1 if method is RankMethod.DENSE else position
        ranked.append(RankedRow(rank=rank, value=value, row=row))
        previous = value

    return ranked if limit is None else ranked[:limit]
