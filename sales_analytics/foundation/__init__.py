"""Foundational building blocks: entity records, row sources, and aggregation.

This package exposes the customer/product/sales records delivered by a row
source, the row-source implementations, and the aggregator that groups
sales lines into per-key measures.
"""

from .aggregation import (
    CATEGORY,
    COUNTRY,
    CUSTOMER,
    ORDER_MONTH,
    ORDER_YEAR,
    PRODUCT,
    PRODUCT_NAME,
    SUBCATEGORY,
    AggregateRow,
    Dimension,
    EnrichedSale,
    PeriodGranularity,
    aggregate_sales,
    calculate_lifespan,
    join_sales,
    months_between,
    round_currency,
    safe_divide,
)
from .entities import Customer, Product, SaleLine, SalesRecordContract
from .errors import DataAccessError
from .row_source import DataFrameRowSource, InMemoryRowSource, RowSource, snapshot

__all__ = [
    "AggregateRow",
    "CATEGORY",
    "COUNTRY",
    "CUSTOMER",
    "Customer",
    "DataAccessError",
    "DataFrameRowSource",
    "Dimension",
    "EnrichedSale",
    "InMemoryRowSource",
    "ORDER_MONTH",
    "ORDER_YEAR",
    "PRODUCT",
    "PRODUCT_NAME",
    "PeriodGranularity",
    "Product",
    "RowSource",
    "SUBCATEGORY",
    "SaleLine",
    "SalesRecordContract",
    "aggregate_sales",
    "calculate_lifespan",
    "join_sales",
    "months_between",
    "round_currency",
    "safe_divide",
    "snapshot",
]
