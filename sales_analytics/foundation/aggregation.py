"""Group sales lines by dimensions and compute sum/count/average measures."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Callable, Hashable, Iterable, Mapping, Sequence

from sales_analytics.foundation.entities import Customer, Product, SaleLine

logger = logging.getLogger(__name__)

# Currency is presented with 2 decimal places; intermediate values keep full precision.
CURRENCY_PRECISION = Decimal("0.01")


def round_currency(value: Decimal | None) -> Decimal | None:
    """Round a currency value for presentation (2 dp, half-up)."""
    if value is None:
        return None
    return value.quantize(CURRENCY_PRECISION, rounding=ROUND_HALF_UP)


def safe_divide(
    numerator: Decimal | int,
    denominator: Decimal | int,
    default: Decimal | None = Decimal("0"),
) -> Decimal | None:
    """Divide, returning ``default`` instead of raising on a zero denominator."""
    if denominator == 0:
        return default
    return Decimal(numerator) / Decimal(denominator)


def months_between(start: date, end: date) -> int:
    """Whole months from ``start`` to ``end``, partial months rounded down.

    A month is only counted once the day of month of ``end`` reaches the day
    of month of ``start`` (Jan 31 -> Feb 28 is 0 months, Jan 15 -> Feb 15 is
    1 month). The result is negative when ``end`` precedes ``start``.
    """
    if end < start:
        return -months_between(end, start)
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return months


def calculate_lifespan(first: date | None, last: date | None) -> int:
    """Lifespan in whole months between first and last transaction dates."""
    if first is None or last is None:
        return 0
    return months_between(first, last)


def null_safe_key(value: Any) -> tuple:
    """Sort key that orders ``None`` after every other value."""
    if isinstance(value, tuple):
        return tuple(null_safe_key(item) for item in value)
    return (value is None, value if value is not None else 0)


@dataclass(frozen=True, slots=True)
class EnrichedSale:
    """A sales line joined with its customer and product (if known)."""

    sale: SaleLine
    customer: Customer | None = None
    product: Product | None = None


def join_sales(
    sales: Iterable[SaleLine],
    customers: Iterable[Customer],
    products: Iterable[Product],
    how: str = "inner",
) -> list[EnrichedSale]:
    """Attach customer and product attributes to every sales line.

    Parameters
    ----------
    sales:
        Sales lines to enrich.
    customers, products:
        Dimension rows, looked up by key.
    how:
        ``"inner"`` drops lines whose customer or product is unknown;
        ``"left"`` keeps them with ``None`` in place of the missing side.
    """
    if how not in ("inner", "left"):
        raise ValueError(f"Unsupported join type: {how!r} (expected 'inner' or 'left')")

    customers_by_key = {customer.key: customer for customer in customers}
    products_by_key = {product.key: product for product in products}

    joined: list[EnrichedSale] = []
    unmatched = 0
    for line in sales:
        customer = customers_by_key.get(line.customer_key)
        product = products_by_key.get(line.product_key)
        if customer is None or product is None:
            unmatched += 1
            if how == "inner":
                continue
        joined.append(EnrichedSale(sale=line, customer=customer, product=product))

    if unmatched:
        action = "dropped" if how == "inner" else "kept without dimension data"
        logger.warning(
            f"{unmatched} sales lines reference unknown customers or products; {action}"
        )
    return joined


def resolve_field(line: EnrichedSale, name: str) -> Any:
    """Read a field from an enriched sale.

    Plain names refer to the sales line (``"price"``); dotted names refer to
    the joined records (``"product.maintenance_cost"``, ``"customer.country"``).
    """
    if "." in name:
        owner_name, attribute = name.split(".", 1)
        if owner_name not in ("customer", "product"):
            raise ValueError(f"Unknown record in field reference: {name!r}")
        owner = getattr(line, owner_name)
        if owner is None:
            return None
        if not hasattr(owner, attribute):
            raise ValueError(f"Unknown field: {name!r}")
        return getattr(owner, attribute)
    if not hasattr(line.sale, name):
        raise ValueError(f"Unknown field: {name!r}")
    return getattr(line.sale, name)


class PeriodGranularity(str, Enum):
    """Time buckets supported for trend grouping."""

    MONTH = "month"
    YEAR = "year"


@dataclass(frozen=True)
class Dimension:
    """A named grouping key extracted from an enriched sale.

    An extractor returning ``None`` excludes the line from the aggregation
    (it is not collected into an "unknown" bucket).
    """

    name: str
    extract: Callable[[EnrichedSale], Hashable | None]


def _order_year(line: EnrichedSale) -> int | None:
    order_date = line.sale.order_date
    return None if order_date is None else order_date.year


def _order_month(line: EnrichedSale) -> date | None:
    order_date = line.sale.order_date
    return None if order_date is None else order_date.replace(day=1)


def _attribute(owner: str, attribute: str) -> Callable[[EnrichedSale], Hashable | None]:
    def extract(line: EnrichedSale) -> Hashable | None:
        record = getattr(line, owner)
        return None if record is None else getattr(record, attribute)

    return extract


ORDER_YEAR = Dimension("order_year", _order_year)
ORDER_MONTH = Dimension("order_month", _order_month)
CUSTOMER = Dimension("customer_key", lambda line: line.sale.customer_key)
PRODUCT = Dimension("product_key", lambda line: line.sale.product_key)
PRODUCT_NAME = Dimension("product_name", _attribute("product", "name"))
CATEGORY = Dimension("category", _attribute("product", "category"))
SUBCATEGORY = Dimension("subcategory", _attribute("product", "subcategory"))
COUNTRY = Dimension("country", _attribute("customer", "country"))


def order_period(granularity: PeriodGranularity | str) -> Dimension:
    """Return the order-date dimension for a granularity."""
    granularity = PeriodGranularity(granularity)
    if granularity is PeriodGranularity.YEAR:
        return ORDER_YEAR
    return ORDER_MONTH


@dataclass(frozen=True)
class AggregateRow:
    """Measures for one distinct group key.

    Attributes
    ----------
    dimensions:
        Names of the grouping dimensions, in key order.
    key:
        Values of the grouping dimensions for this row.
    total_sales:
        Sum of non-null ``sales_amount`` values (unrounded).
    total_quantity:
        Sum of non-null ``quantity`` values.
    total_orders:
        Number of distinct order numbers.
    line_count:
        Number of sales lines in the group.
    distinct_customers, distinct_products:
        Distinct customer and product keys.
    first_order_date, last_order_date:
        Earliest and latest non-null order dates (``None`` if none).
    distinct_counts:
        Distinct non-null values for each requested field.
    averages:
        Mean of non-null values for each requested field; the caller's
        empty-average sentinel when a field has no non-null values.
    """

    dimensions: tuple[str, ...]
    key: tuple[Any, ...]
    total_sales: Decimal
    total_quantity: int
    total_orders: int
    line_count: int
    distinct_customers: int
    distinct_products: int
    first_order_date: date | None = None
    last_order_date: date | None = None
    distinct_counts: Mapping[str, int] = field(default_factory=dict)
    averages: Mapping[str, Decimal | None] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if len(self.dimensions) != len(self.key):
            raise ValueError(
                f"Key {self.key} does not match dimensions {self.dimensions}"
            )
        for name in ("total_orders", "line_count", "distinct_customers", "distinct_products"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative: {getattr(self, name)}")
        if self.total_orders > self.line_count:
            raise ValueError(
                f"Distinct orders ({self.total_orders}) cannot exceed line count ({self.line_count})"
            )

    def dimension(self, name: str) -> Any:
        """Return the key value for a named dimension."""
        try:
            return self.key[self.dimensions.index(name)]
        except ValueError:
            raise KeyError(f"Row is not grouped by {name!r}: {self.dimensions}") from None

    def measure(self, name: str) -> Any:
        """Return a measure by name, including requested averages/distincts."""
        if name in self.averages:
            return self.averages[name]
        if name in self.distinct_counts:
            return self.distinct_counts[name]
        if name in _MEASURE_FIELDS:
            return getattr(self, name)
        raise ValueError(f"Unknown measure: {name!r}")

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable mapping with currency rounded."""
        payload: dict[str, object] = {}
        for name, value in zip(self.dimensions, self.key):
            payload[name] = value.isoformat() if isinstance(value, date) else value
        payload.update(
            {
                "total_sales": float(round_currency(self.total_sales)),
                "total_quantity": self.total_quantity,
                "total_orders": self.total_orders,
                "line_count": self.line_count,
                "distinct_customers": self.distinct_customers,
                "distinct_products": self.distinct_products,
                "first_order_date": self.first_order_date.isoformat()
                if self.first_order_date
                else None,
                "last_order_date": self.last_order_date.isoformat()
                if self.last_order_date
                else None,
            }
        )
        for name, count in self.distinct_counts.items():
            payload[f"distinct_{name}"] = count
        for name, average in self.averages.items():
            payload[f"avg_{name}"] = None if average is None else float(round_currency(average))
        return payload


_MEASURE_FIELDS = frozenset(
    {
        "total_sales",
        "total_quantity",
        "total_orders",
        "line_count",
        "distinct_customers",
        "distinct_products",
    }
)


def _as_enriched(line: EnrichedSale | SaleLine) -> EnrichedSale:
    if isinstance(line, EnrichedSale):
        return line
    if isinstance(line, SaleLine):
        return EnrichedSale(sale=line)
    raise TypeError(f"Expected SaleLine or EnrichedSale, got {type(line).__name__}")


def aggregate_sales(
    lines: Iterable[EnrichedSale | SaleLine],
    dimensions: Sequence[Dimension] = (),
    distinct_fields: Sequence[str] = (),
    average_fields: Sequence[str] = (),
    empty_average: Decimal | None = None,
) -> list[AggregateRow]:
    """Aggregate sales lines into one row per distinct dimension key.

    Parameters
    ----------
    lines:
        Sales lines, optionally pre-joined via :func:`join_sales`.
    dimensions:
        Grouping dimensions. With no dimensions a single global row is
        produced (unless there are no lines at all).
    distinct_fields:
        Extra fields to count distinct non-null values for
        (see :func:`resolve_field` for naming).
    average_fields:
        Fields to average over non-null values only.
    empty_average:
        Sentinel for an average with no non-null values (``None`` or ``0``).

    Returns
    -------
    list[AggregateRow]
        Rows sorted by key ascending with nulls last, so the result does not
        depend on input order.

    Examples
    --------
    >>> from decimal import Decimal
    >>> from datetime import date
    >>> from sales_analytics.foundation.entities import SaleLine
    >>> sales = [
    ...     SaleLine("SO1", 1, 10, date(2013, 1, 5), sales_amount=Decimal("100"), quantity=1),
    ...     SaleLine("SO1", 2, 10, date(2013, 1, 5), sales_amount=Decimal("50"), quantity=2),
    ...     SaleLine("SO2", 1, 11, None, sales_amount=Decimal("75"), quantity=1),
    ... ]
    >>> rows = aggregate_sales(sales, [ORDER_YEAR])
    >>> rows[0].key, rows[0].total_sales, rows[0].total_orders
    ((2013,), Decimal('150'), 1)
    """
    dimension_names = tuple(dimension.name for dimension in dimensions)
    buckets: dict[tuple[Any, ...], dict[str, Any]] = {}
    excluded = 0

    for raw_line in lines:
        line = _as_enriched(raw_line)
        key = tuple(dimension.extract(line) for dimension in dimensions)
        if any(value is None for value in key):
            excluded += 1
            continue

        bucket = buckets.get(key)
        if bucket is None:
            bucket = {
                "total_sales": Decimal("0"),
                "total_quantity": 0,
                "orders": set(),
                "line_count": 0,
                "customers": set(),
                "products": set(),
                "first_order_date": None,
                "last_order_date": None,
                "distinct": {name: set() for name in distinct_fields},
                "sums": {name: Decimal("0") for name in average_fields},
                "counts": {name: 0 for name in average_fields},
            }
            buckets[key] = bucket

        sale = line.sale
        if sale.sales_amount is not None:
            bucket["total_sales"] += sale.sales_amount
        if sale.quantity is not None:
            bucket["total_quantity"] += sale.quantity
        bucket["orders"].add(sale.order_number)
        bucket["line_count"] += 1
        bucket["customers"].add(sale.customer_key)
        bucket["products"].add(sale.product_key)

        if sale.order_date is not None:
            first = bucket["first_order_date"]
            last = bucket["last_order_date"]
            bucket["first_order_date"] = (
                sale.order_date if first is None else min(first, sale.order_date)
            )
            bucket["last_order_date"] = (
                sale.order_date if last is None else max(last, sale.order_date)
            )

        for name in distinct_fields:
            value = resolve_field(line, name)
            if value is not None:
                bucket["distinct"][name].add(value)
        for name in average_fields:
            value = resolve_field(line, name)
            if value is not None:
                bucket["sums"][name] += Decimal(str(value))
                bucket["counts"][name] += 1

    if excluded:
        logger.warning(
            f"{excluded} sales lines excluded from grouping by {dimension_names}: "
            "null dimension value"
        )

    rows: list[AggregateRow] = []
    for key, payload in buckets.items():
        rows.append(
            AggregateRow(
                dimensions=dimension_names,
                key=key,
                total_sales=payload["total_sales"],
                total_quantity=payload["total_quantity"],
                total_orders=len(payload["orders"]),
                line_count=payload["line_count"],
                distinct_customers=len(payload["customers"]),
                distinct_products=len(payload["products"]),
                first_order_date=payload["first_order_date"],
                last_order_date=payload["last_order_date"],
                distinct_counts={
                    name: len(values) for name, values in payload["distinct"].items()
                },
                averages={
                    name: safe_divide(
                        payload["sums"][name],
                        payload["counts"][name],
                        default=empty_average,
                    )
                    for name in average_fields
                },
            )
        )

    rows.sort(key=lambda row: null_safe_key(row.key))
    logger.debug(f"Aggregated {len(rows)} groups by {dimension_names}")
    return rows
