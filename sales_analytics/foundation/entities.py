"""Entity records for customers, products, and sales lines.

These are the read-only rows delivered by a row source. They are already
cleaned and correctly typed upstream; the contract below only checks that
the shape is right so that downstream analytics can rely on it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from sales_analytics.foundation.errors import DataAccessError


@dataclass(frozen=True)
class Customer:
    """A customer dimension row.

    Attributes
    ----------
    key:
        Surrogate key referenced by sales lines. Unique and immutable.
    number:
        Business identifier (e.g. ``AW00011000``).
    first_name, last_name:
        Name parts; either may be missing.
    country, marital_status, gender:
        Descriptive attributes used for magnitude analyses.
    birthdate, create_date:
        Optional dates.
    """

    key: int
    number: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    country: str | None = None
    marital_status: str | None = None
    gender: str | None = None
    birthdate: date | None = None
    create_date: date | None = None

    @property
    def full_name(self) -> str:
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts)


@dataclass(frozen=True)
class Product:
    """A product dimension row. ``maintenance_cost`` drives cost segmentation."""

    key: int
    id: int | None = None
    number: str | None = None
    name: str | None = None
    category_id: str | None = None
    category: str | None = None
    subcategory: str | None = None
    maintenance_cost: Decimal | None = None
    product_line: str | None = None
    start_date: date | None = None


@dataclass(frozen=True)
class SaleLine:
    """A single line of a sales order.

    Many lines may share an ``order_number``. ``product_key`` and
    ``customer_key`` reference :class:`Product` and :class:`Customer`.
    Measures and dates may be ``None`` (null) and are then ignored by
    sums, averages, and time bucketing.
    """

    order_number: str
    product_key: int
    customer_key: int
    order_date: date | None = None
    shipping_date: date | None = None
    due_date: date | None = None
    sales_amount: Decimal | None = None
    quantity: int | None = None
    price: Decimal | None = None


class SalesRecordContract:
    """Validate raw mappings and convert them into entity records.

    Raw mappings typically come from a database cursor or a JSON payload.
    Values must already have the right types; only lossless conversions are
    performed (``int``/``float``/``str`` to ``Decimal``, ``datetime`` to
    ``date``). Anything else raises :class:`DataAccessError` because the
    backing store delivered malformed rows.
    """

    #: Fields that must be present and non-null for each entity.
    REQUIRED_FIELDS = {
        "customers": {"key"},
        "products": {"key"},
        "sales": {"order_number", "product_key", "customer_key"},
    }

    def validate_customers(
        self, records: Iterable[Mapping[str, Any]]
    ) -> list[Customer]:
        customers: list[Customer] = []
        for idx, record in enumerate(records):
            self._require(record, "customers", idx)
            customers.append(
                Customer(
                    key=_as_int(record["key"], "key", idx),
                    number=_as_str(record.get("number")),
                    first_name=_as_str(record.get("first_name")),
                    last_name=_as_str(record.get("last_name")),
                    country=_as_str(record.get("country")),
                    marital_status=_as_str(record.get("marital_status")),
                    gender=_as_str(record.get("gender")),
                    birthdate=_as_date(record.get("birthdate"), "birthdate", idx),
                    create_date=_as_date(
                        record.get("create_date"), "create_date", idx
                    ),
                )
            )
        return customers

    def validate_products(self, records: Iterable[Mapping[str, Any]]) -> list[Product]:
        products: list[Product] = []
        for idx, record in enumerate(records):
            self._require(record, "products", idx)
            product_id = record.get("id")
            products.append(
                Product(
                    key=_as_int(record["key"], "key", idx),
                    id=None if product_id is None else _as_int(product_id, "id", idx),
                    number=_as_str(record.get("number")),
                    name=_as_str(record.get("name")),
                    category_id=_as_str(record.get("category_id")),
                    category=_as_str(record.get("category")),
                    subcategory=_as_str(record.get("subcategory")),
                    maintenance_cost=_as_decimal(
                        record.get("maintenance_cost"), "maintenance_cost", idx
                    ),
                    product_line=_as_str(record.get("product_line")),
                    start_date=_as_date(record.get("start_date"), "start_date", idx),
                )
            )
        return products

    def validate_sales(self, records: Iterable[Mapping[str, Any]]) -> list[SaleLine]:
        sales: list[SaleLine] = []
        for idx, record in enumerate(records):
            self._require(record, "sales", idx)
            quantity = record.get("quantity")
            sales.append(
                SaleLine(
                    order_number=str(record["order_number"]),
                    product_key=_as_int(record["product_key"], "product_key", idx),
                    customer_key=_as_int(record["customer_key"], "customer_key", idx),
                    order_date=_as_date(record.get("order_date"), "order_date", idx),
                    shipping_date=_as_date(
                        record.get("shipping_date"), "shipping_date", idx
                    ),
                    due_date=_as_date(record.get("due_date"), "due_date", idx),
                    sales_amount=_as_decimal(
                        record.get("sales_amount"), "sales_amount", idx
                    ),
                    quantity=None
                    if quantity is None
                    else _as_int(quantity, "quantity", idx),
                    price=_as_decimal(record.get("price"), "price", idx),
                )
            )
        return sales

    def _require(self, record: Mapping[str, Any], entity: str, idx: int) -> None:
        missing = sorted(
            name for name in self.REQUIRED_FIELDS[entity] if record.get(name) is None
        )
        if missing:
            raise DataAccessError(
                f"{entity} record at index {idx} missing required fields: {missing}"
            )


def _as_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _as_int(value: Any, field_name: str, idx: int) -> int:
    if isinstance(value, bool):
        raise DataAccessError(
            f"Field {field_name!r} at index {idx} must be an integer, got bool"
        )
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as exc:
            raise DataAccessError(
                f"Field {field_name!r} at index {idx} must be an integer, got {value!r}"
            ) from exc
    raise DataAccessError(
        f"Field {field_name!r} at index {idx} must be an integer, got {value!r}"
    )


def _as_decimal(value: Any, field_name: str, idx: int) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise DataAccessError(
            f"Field {field_name!r} at index {idx} must be numeric, got bool"
        )
    try:
        # str() keeps floats like 0.1 from expanding into binary noise
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise DataAccessError(
            f"Field {field_name!r} at index {idx} must be numeric, got {value!r}"
        ) from exc


def _as_date(value: Any, field_name: str, idx: int) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise DataAccessError(
        f"Field {field_name!r} at index {idx} must be a date, got {value!r}"
    )
