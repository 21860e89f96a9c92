"""Customer report: one row per customer consolidating behaviour and KPIs.

The report joins each customer's aggregated transactions with their
segment and three KPIs:

- recency: whole months from the last order to the reference date
- average order value: total sales / distinct orders (0 without orders)
- average monthly spend: total sales / lifespan months (total sales when
  the lifespan is 0, i.e. the whole spend is attributed to one month)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from sales_analytics.analyses.segmentation import customer_rule_set
from sales_analytics.config import AnalyticsConfig
from sales_analytics.foundation.aggregation import (
    CUSTOMER,
    AggregateRow,
    aggregate_sales,
    calculate_lifespan,
    join_sales,
    months_between,
    round_currency,
    safe_divide,
)
from sales_analytics.foundation.entities import Customer, Product, SaleLine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CustomerReportRow:
    """Consolidated metrics for one customer.

    Attributes
    ----------
    customer_key, customer_number, customer_name:
        Identity of the customer; the name is ``"first last"``.
    segment:
        VIP / REGULAR / NEW label.
    first_order_date, last_order_date:
        Earliest and latest order dates (``None`` if no line is dated).
    recency:
        Whole months between ``last_order_date`` and the reference date;
        ``None`` when the customer has no dated order.
    total_orders:
        Distinct order numbers.
    total_sales:
        Sum of sales amounts (unrounded).
    total_quantity:
        Units purchased.
    total_products:
        Distinct products purchased.
    lifespan:
        Whole months between first and last order.
    avg_order_value:
        ``total_sales / total_orders``; 0 when there are no orders.
    avg_monthly_spend:
        ``total_sales / lifespan``; ``total_sales`` when the lifespan is 0.
    """

    customer_key: int
    customer_number: str | None
    customer_name: str
    segment: str
    first_order_date: date | None
    last_order_date: date | None
    recency: int | None
    total_orders: int
    total_sales: Decimal
    total_quantity: int
    total_products: int
    lifespan: int
    avg_order_value: Decimal
    avg_monthly_spend: Decimal

    def __post_init__(self) -> None:
        if self.total_orders < 0:
            raise ValueError(
                f"Total orders cannot be negative: {self.total_orders} (customer_key={self.customer_key})"
            )
        if self.total_products < 0:
            raise ValueError(
                f"Total products cannot be negative: {self.total_products} (customer_key={self.customer_key})"
            )
        if self.lifespan < 0:
            raise ValueError(
                f"Lifespan cannot be negative: {self.lifespan} (customer_key={self.customer_key})"
            )

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable mapping with currency rounded to cents."""
        return {
            "customer_key": self.customer_key,
            "customer_number": self.customer_number,
            "customer_name": self.customer_name,
            "segment": self.segment,
            "first_order_date": _isoformat(self.first_order_date),
            "last_order_date": _isoformat(self.last_order_date),
            "recency": self.recency,
            "total_orders": self.total_orders,
            "total_sales": float(round_currency(self.total_sales)),
            "total_quantity": self.total_quantity,
            "total_products": self.total_products,
            "lifespan": self.lifespan,
            "avg_order_value": float(round_currency(self.avg_order_value)),
            "avg_monthly_spend": float(round_currency(self.avg_monthly_spend)),
        }


def _isoformat(value: date | None) -> str | None:
    return None if value is None else value.isoformat()


def compose_customer_row(
    aggregate: AggregateRow,
    customer: Customer,
    reference_date: date,
    config: AnalyticsConfig | None = None,
) -> CustomerReportRow:
    """Build the report row for one customer from their aggregate."""
    rule_set = customer_rule_set(config)
    lifespan = calculate_lifespan(aggregate.first_order_date, aggregate.last_order_date)
    recency = (
        None
        if aggregate.last_order_date is None
        else months_between(aggregate.last_order_date, reference_date)
    )
    total_sales = aggregate.total_sales
    return CustomerReportRow(
        customer_key=customer.key,
        customer_number=customer.number,
        customer_name=customer.full_name,
        segment=rule_set.classify(
            {"lifespan_months": lifespan, "total_spending": total_sales}
        ),
        first_order_date=aggregate.first_order_date,
        last_order_date=aggregate.last_order_date,
        recency=recency,
        total_orders=aggregate.total_orders,
        total_sales=total_sales,
        total_quantity=aggregate.total_quantity,
        total_products=aggregate.distinct_products,
        lifespan=lifespan,
        avg_order_value=safe_divide(total_sales, aggregate.total_orders),
        avg_monthly_spend=safe_divide(total_sales, lifespan, default=total_sales),
    )


def build_customer_report(
    sales: Iterable[SaleLine],
    customers: Iterable[Customer],
    products: Iterable[Product],
    config: AnalyticsConfig | None = None,
) -> list[CustomerReportRow]:
    """Generate the customer report.

    Only sales lines whose customer and product both exist are counted, and
    only customers with at least one such line appear in the report. The
    reference date is resolved once, so every row uses the same "now".

    Returns
    -------
    list[CustomerReportRow]
        Sorted by ``total_sales`` descending, ties by ``customer_key``
        ascending.

    Examples
    --------
    >>> from datetime import date
    >>> from decimal import Decimal
    >>> from sales_analytics.foundation.entities import Customer, Product, SaleLine
    >>> customers = [Customer(1, "AW1", "Jon", "Yang")]
    >>> products = [Product(10, name="Road Bike")]
    >>> sales = [
    ...     SaleLine("SO1", 10, 1, date(2012, 1, 10), sales_amount=Decimal("3000"), quantity=1),
    ...     SaleLine("SO2", 10, 1, date(2013, 3, 10), sales_amount=Decimal("3000"), quantity=1),
    ... ]
    >>> config = AnalyticsConfig(reference_date=date(2014, 3, 10))
    >>> row = build_customer_report(sales, customers, products, config)[0]
    >>> row.segment, row.lifespan, row.recency, row.avg_order_value
    ('VIP', 14, 12, Decimal('3000'))
    """
    config = config or AnalyticsConfig()
    customers = list(customers)
    reference_date = config.resolve_reference_date()

    joined = join_sales(sales, customers, products, how="inner")
    aggregates = aggregate_sales(joined, [CUSTOMER])
    customers_by_key = {customer.key: customer for customer in customers}

    report = [
        compose_customer_row(
            aggregate,
            customers_by_key[aggregate.dimension("customer_key")],
            reference_date,
            config,
        )
        for aggregate in aggregates
    ]
    report.sort(key=lambda row: (-row.total_sales, row.customer_key))
    logger.debug(
        f"Customer report built for {len(report)} customers (reference date {reference_date})"
    )
    return report
