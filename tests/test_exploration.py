"""Tests for exploratory metrics and ranking."""

from datetime import date
from decimal import Decimal

import pytest

from sales_analytics.analyses.exploration import (
    Measure,
    RankMethod,
    calculate_measures,
    count_nulls,
    distinct_values,
    rank_rows,
    summarize_order_dates,
)
from sales_analytics.foundation.aggregation import AggregateRow
from sales_analytics.foundation.entities import Customer, Product, SaleLine


@pytest.fixture
def products():
    return [
        Product(10, name="Road-150", category="Bikes"),
        Product(11, name="Road-150", category="Bikes"),  # same name, other size
        Product(20, name="Water Bottle", category="Accessories"),
        Product(30, name=None, category=None),
    ]


@pytest.fixture
def customers():
    return [
        Customer(1, country="Germany"),
        Customer(2, country="France"),
        Customer(3, country=None),
    ]


@pytest.fixture
def sales():
    return [
        SaleLine("SO1", 10, 1, date(2011, 1, 15), sales_amount=Decimal("3000"), quantity=1, price=Decimal("3000")),
        SaleLine("SO1", 20, 1, date(2011, 1, 15), sales_amount=Decimal("5"), quantity=1, price=Decimal("5")),
        SaleLine("SO2", 20, 2, date(2012, 3, 14), sales_amount=Decimal("10"), quantity=2, price=None),
        SaleLine("SO3", 11, 2, date(2013, 6, 1), sales_amount=Decimal("3000"), quantity=1, price=Decimal("1")),
        SaleLine("SO4", 20, 2, None, sales_amount=None, quantity=None, price=None),
    ]


class TestCalculateMeasures:
    def test_headline_measures(self, sales, products, customers):
        measures = {m.name: m.value for m in calculate_measures(sales, products, customers)}
        assert measures == {
            "total_sales": Decimal("6015"),
            "total_quantity": 5,
            "avg_price": Decimal("1002"),
            "total_orders": 4,
            "total_products": 2,
            "total_customers": 3,
            "customers_with_orders": 2,
        }

    def test_order_is_stable(self, sales, products, customers):
        names = [m.name for m in calculate_measures(sales, products, customers)]
        assert names[0] == "total_sales"
        assert names[-1] == "customers_with_orders"

    def test_empty_inputs(self):
        measures = {m.name: m.value for m in calculate_measures([], [], [])}
        assert measures["total_sales"] == Decimal("0")
        assert measures["avg_price"] == Decimal("0")
        assert measures["total_orders"] == 0

    def test_measure_is_frozen(self):
        measure = Measure("total_sales", Decimal("1"))
        with pytest.raises(AttributeError):
            measure.value = Decimal("2")


class TestSummarizeOrderDates:
    def test_range_and_extreme_months(self, sales):
        summary = summarize_order_dates(sales)
        assert summary.first_order_date == date(2011, 1, 15)
        assert summary.last_order_date == date(2013, 6, 1)
        assert summary.range_months == 28
        assert summary.range_years == 2
        assert summary.highest_month == date(2011, 1, 1)
        assert summary.highest_month_sales == Decimal("3005")
        assert summary.lowest_month == date(2012, 3, 1)
        assert summary.lowest_month_sales == Decimal("10")

    def test_ties_go_to_earlier_month(self):
        sales = [
            SaleLine("SO2", 1, 1, date(2013, 2, 1), sales_amount=Decimal("7")),
            SaleLine("SO1", 1, 1, date(2013, 1, 1), sales_amount=Decimal("7")),
        ]
        summary = summarize_order_dates(sales)
        assert summary.highest_month == date(2013, 1, 1)
        assert summary.lowest_month == date(2013, 1, 1)

    def test_no_dated_sales(self):
        summary = summarize_order_dates([SaleLine("SO1", 1, 1, None)])
        assert summary.first_order_date is None
        assert summary.range_months == 0
        assert summary.highest_month is None


class TestDimensionExploration:
    def test_distinct_values_sorted_without_nulls(self, products, customers):
        assert distinct_values(products, "category") == ["Accessories", "Bikes"]
        assert distinct_values(customers, "country") == ["France", "Germany"]

    def test_count_nulls(self, products, sales):
        assert count_nulls(products, "name") == 1
        assert count_nulls(sales, "order_date") == 1
        assert count_nulls(sales, "price") == 2


def product_row(key, sales):
    return AggregateRow(("product_key",), (key,), Decimal(sales), 1, 1, 1, 1, 1)


class TestRankRows:
    """Ranking semantics of DENSE_RANK, RANK and ROW_NUMBER."""

    @pytest.fixture
    def rows(self):
        return [product_row(4, 10), product_row(1, 50), product_row(3, 80), product_row(2, 80)]

    def test_dense_rank(self, rows):
        ranked = rank_rows(rows, method=RankMethod.DENSE)
        assert [(r.rank, r.row.key[0]) for r in ranked] == [(1, 2), (1, 3), (2, 1), (3, 4)]

    def test_rank_leaves_gaps(self, rows):
        ranked = rank_rows(rows, method=RankMethod.RANK)
        assert [r.rank for r in ranked] == [1, 1, 3, 4]

    def test_row_number_is_unique(self, rows):
        ranked = rank_rows(rows, method="row_number")
        assert [(r.rank, r.row.key[0]) for r in ranked] == [(1, 2), (2, 3), (3, 1), (4, 4)]

    def test_bottom_n(self, rows):
        ranked = rank_rows(rows, descending=False, limit=2)
        assert [(r.rank, r.value) for r in ranked] == [(1, Decimal("10")), (2, Decimal("50"))]

    def test_top_n(self, rows):
        assert len(rank_rows(rows, limit=3)) == 3
        assert rank_rows(rows, limit=0) == []

    def test_negative_limit(self, rows):
        with pytest.raises(ValueError, match="limit cannot be negative"):
            rank_rows(rows, limit=-1)

    def test_unknown_method(self, rows):
        with pytest.raises(ValueError):
            rank_rows(rows, method="ntile")

    def test_rank_on_other_measure(self):
        rows = [
            AggregateRow(("product_key",), (1,), Decimal("5"), 1, 1, 1, 3, 1),
            AggregateRow(("product_key",), (2,), Decimal("9"), 1, 1, 1, 1, 1),
        ]
        ranked = rank_rows(rows, measure="distinct_customers")
        assert [r.row.key[0] for r in ranked] == [1, 2]
