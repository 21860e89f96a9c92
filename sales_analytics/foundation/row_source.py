"""Read-only access to the customer, product, and sales collections.

A row source is the single seam between the analytics and wherever the
rows live. Two implementations are provided:

- :class:`InMemoryRowSource` keeps immutable tuple snapshots.
- :class:`DataFrameRowSource` adapts three pandas DataFrames (for example
  the result of ``pd.read_sql`` against the warehouse tables).

Use :func:`snapshot` at the start of an analytics run so that every stage
reads the same rows, even when the underlying store is live.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Mapping, Protocol, Sequence, runtime_checkable

import pandas as pd

from sales_analytics.foundation.entities import (
    Customer,
    Product,
    SaleLine,
    SalesRecordContract,
)
from sales_analytics.foundation.errors import DataAccessError

logger = logging.getLogger(__name__)

DateRange = tuple[date | None, date | None]

CUSTOMER_COLUMNS = (
    "key",
    "number",
    "first_name",
    "last_name",
    "country",
    "marital_status",
    "gender",
    "birthdate",
    "create_date",
)
PRODUCT_COLUMNS = (
    "key",
    "id",
    "number",
    "name",
    "category_id",
    "category",
    "subcategory",
    "maintenance_cost",
    "product_line",
    "start_date",
)
SALE_COLUMNS = (
    "order_number",
    "product_key",
    "customer_key",
    "order_date",
    "shipping_date",
    "due_date",
    "sales_amount",
    "quantity",
    "price",
)

__all__ = [
    "DataAccessError",
    "DateRange",
    "RowSource",
    "InMemoryRowSource",
    "DataFrameRowSource",
    "filter_by_date_range",
    "snapshot",
]


@runtime_checkable
class RowSource(Protocol):
    """Read-only interface consumed by the analytics pipeline.

    Every method returns an empty sequence when nothing matches and raises
    :class:`DataAccessError` when the backing store cannot be read.
    """

    def fetch_customers(self) -> Sequence[Customer]: ...

    def fetch_products(self) -> Sequence[Product]: ...

    def fetch_sales(self, date_range: DateRange | None = None) -> Sequence[SaleLine]: ...


def filter_by_date_range(
    sales: Iterable[SaleLine], date_range: DateRange | None
) -> list[SaleLine]:
    """Keep sales whose order date falls inside an inclusive date range.

    Either bound may be ``None`` (open). When a range is given, lines with
    a null ``order_date`` are dropped because they cannot be placed in it.
    """
    if date_range is None:
        return list(sales)

    start, end = date_range
    if start is not None and end is not None and start > end:
        raise ValueError(f"Invalid date range: start {start} is after end {end}")

    selected: list[SaleLine] = []
    for line in sales:
        if line.order_date is None:
            continue
        if start is not None and line.order_date < start:
            continue
        if end is not None and line.order_date > end:
            continue
        selected.append(line)
    return selected


class InMemoryRowSource:
    """Row source backed by immutable in-memory snapshots."""

    def __init__(
        self,
        customers: Iterable[Customer] = (),
        products: Iterable[Product] = (),
        sales: Iterable[SaleLine] = (),
    ) -> None:
        self._customers = tuple(customers)
        self._products = tuple(products)
        self._sales = tuple(sales)

    @classmethod
    def from_records(
        cls,
        customers: Iterable[Mapping[str, Any]] = (),
        products: Iterable[Mapping[str, Any]] = (),
        sales: Iterable[Mapping[str, Any]] = (),
    ) -> "InMemoryRowSource":
        """Build a source from raw mappings, validating them on the way in."""
        contract = SalesRecordContract()
        return cls(
            customers=contract.validate_customers(customers),
            products=contract.validate_products(products),
            sales=contract.validate_sales(sales),
        )

    def fetch_customers(self) -> Sequence[Customer]:
        return self._customers

    def fetch_products(self) -> Sequence[Product]:
        return self._products

    def fetch_sales(self, date_range: DateRange | None = None) -> Sequence[SaleLine]:
        if date_range is None:
            return self._sales
        return tuple(filter_by_date_range(self._sales, date_range))


class DataFrameRowSource:
    """Row source over pandas DataFrames.

    Each frame must provide the columns named in ``CUSTOMER_COLUMNS``,
    ``PRODUCT_COLUMNS`` and ``SALE_COLUMNS``. Optional columns may be
    absent and are then treated as null. Missing required columns or values
    that cannot be converted raise :class:`DataAccessError`.
    """

    REQUIRED_COLUMNS = {
        "customers": ("key",),
        "products": ("key",),
        "sales": ("order_number", "product_key", "customer_key"),
    }

    def __init__(
        self,
        customers: pd.DataFrame,
        products: pd.DataFrame,
        sales: pd.DataFrame,
    ) -> None:
        self._frames = {
            "customers": customers,
            "products": products,
            "sales": sales,
        }
        self._contract = SalesRecordContract()

    def fetch_customers(self) -> Sequence[Customer]:
        records = self._records("customers", CUSTOMER_COLUMNS)
        return self._contract.validate_customers(records)

    def fetch_products(self) -> Sequence[Product]:
        records = self._records("products", PRODUCT_COLUMNS)
        return self._contract.validate_products(records)

    def fetch_sales(self, date_range: DateRange | None = None) -> Sequence[SaleLine]:
        records = self._records("sales", SALE_COLUMNS)
        return filter_by_date_range(self._contract.validate_sales(records), date_range)

    def _records(
        self, entity: str, columns: Sequence[str]
    ) -> list[dict[str, Any]]:
        frame = self._frames[entity]
        if not isinstance(frame, pd.DataFrame):
            raise DataAccessError(
                f"{entity} source must be a pandas DataFrame, got {type(frame).__name__}"
            )

        missing = set(self.REQUIRED_COLUMNS[entity]) - set(frame.columns)
        if missing:
            raise DataAccessError(
                f"{entity} DataFrame missing required columns: {sorted(missing)}"
            )
        if frame.empty:
            return []

        present = [column for column in columns if column in frame.columns]
        # object dtype keeps ints from being upcast to float when NaN is replaced
        subset = frame[present].astype(object).where(frame[present].notna(), None)
        records = []
        for record in subset.to_dict("records"):
            records.append({name: _from_pandas(value) for name, value in record.items()})
        logger.debug(f"Read {len(records)} {entity} rows from DataFrame")
        return records


def _from_pandas(value: Any) -> Any:
    """Convert pandas scalar types into plain Python values."""
    if isinstance(value, pd.Timestamp):
        return value.date()
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        # numpy scalars
        return value.item()
    return value


def snapshot(source: RowSource, date_range: DateRange | None = None) -> InMemoryRowSource:
    """Read all collections once and freeze them for the rest of a run."""
    try:
        customers = source.fetch_customers()
        products = source.fetch_products()
        sales = source.fetch_sales(date_range)
    except OSError as exc:
        raise DataAccessError(f"Row source unreachable: {exc}") from exc

    logger.debug(
        f"Snapshot taken: {len(customers)} customers, {len(products)} products, "
        f"{len(sales)} sales lines"
    )
    return InMemoryRowSource(customers=customers, products=products, sales=sales)
