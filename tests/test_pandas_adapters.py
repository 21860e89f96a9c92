"""Tests for pandas DataFrame adapters."""

from datetime import date
from decimal import Decimal

import pandas as pd
import pytest

from sales_analytics.analyses.report import CustomerReportRow
from sales_analytics.analyses.windows import part_to_whole, running_totals
from sales_analytics.foundation.aggregation import CATEGORY, AggregateRow, aggregate_sales, join_sales
from sales_analytics.foundation.entities import Customer, Product, SaleLine
from sales_analytics.foundation.errors import DataAccessError
from sales_analytics.pandas import (
    aggregates_to_dataframe,
    build_customer_report_df,
    report_to_dataframe,
    windowed_to_dataframe,
)
from sales_analytics.pandas.report import REPORT_COLUMNS
from sales_analytics.config import AnalyticsConfig


def report_row(key, total_sales):
    return CustomerReportRow(
        customer_key=key,
        customer_number=f"AW{key}",
        customer_name="Jon Yang",
        segment="NEW",
        first_order_date=date(2013, 1, 1),
        last_order_date=date(2013, 1, 1),
        recency=None,
        total_orders=1,
        total_sales=Decimal(total_sales),
        total_quantity=1,
        total_products=1,
        lifespan=0,
        avg_order_value=Decimal(total_sales),
        avg_monthly_spend=Decimal(total_sales),
    )


class TestReportToDataFrame:
    """Test report_to_dataframe conversion."""

    def test_rows_keep_report_order(self):
        """Row order matches the report (total sales descending)."""
        df = report_to_dataframe([report_row(2, "500"), report_row(1, "20.125")])

        assert list(df["customer_key"]) == [2, 1]
        assert df.iloc[1]["total_sales"] == 20.13  # Decimal rounded to cents
        assert pd.isna(df.iloc[0]["recency"])

    def test_empty_input_returns_empty_dataframe(self):
        """Empty report returns empty DataFrame with report columns."""
        df = report_to_dataframe([])

        assert df.empty
        assert list(df.columns) == REPORT_COLUMNS


class TestBuildCustomerReportDf:
    """Test the DataFrame-in, DataFrame-out report."""

    def _frames(self):
        customers = pd.DataFrame(
            {"key": [1, 2], "number": ["AW1", "AW2"], "first_name": ["Jon", "Eugene"], "last_name": ["Yang", "Huang"]}
        )
        products = pd.DataFrame({"key": [10], "name": ["Road-150"]})
        sales = pd.DataFrame(
            {
                "order_number": ["SO1", "SO2", "SO3"],
                "product_key": [10, 10, 10],
                "customer_key": [1, 1, 2],
                "order_date": pd.to_datetime(["2012-01-10", "2013-03-10", "2013-06-01"]),
                "sales_amount": [3000.0, 3000.0, 150.0],
                "quantity": [1, 1, 1],
            }
        )
        return customers, products, sales

    def test_builds_report(self):
        """Report is built straight from warehouse frames."""
        customers, products, sales = self._frames()
        config = AnalyticsConfig(reference_date=date(2014, 3, 10))

        df = build_customer_report_df(sales, customers, products, config)

        assert list(df["customer_key"]) == [1, 2]
        assert df.iloc[0]["segment"] == "VIP"
        assert df.iloc[0]["customer_name"] == "Jon Yang"
        assert df.iloc[0]["avg_order_value"] == 3000.0
        assert df.iloc[1]["recency"] == 9

    def test_missing_columns_raise(self):
        """Malformed frames surface as DataAccessError."""
        customers, products, sales = self._frames()
        with pytest.raises(DataAccessError):
            build_customer_report_df(sales.drop(columns=["order_number"]), customers, products)


class TestAggregatesToDataFrame:
    """Test aggregates_to_dataframe conversion."""

    def test_dimension_and_measure_columns(self):
        """Dimension columns come first, then measures."""
        products = [Product(10, category="Bikes"), Product(20, category="Accessories")]
        sales = [
            SaleLine("SO1", 10, 1, date(2013, 1, 1), sales_amount=Decimal("100.555"), quantity=1, price=Decimal("5")),
            SaleLine("SO2", 20, 1, date(2013, 1, 2), sales_amount=Decimal("5"), quantity=2, price=Decimal("2.5")),
        ]
        rows = aggregate_sales(
            join_sales(sales, [Customer(1)], products),
            [CATEGORY],
            distinct_fields=["order_date"],
            average_fields=["price"],
        )

        df = aggregates_to_dataframe(rows)

        assert list(df.columns[:2]) == ["category", "total_sales"]
        assert list(df["category"]) == ["Accessories", "Bikes"]
        assert df.iloc[1]["total_sales"] == 100.56
        assert df.iloc[0]["avg_price"] == 2.5
        assert df.iloc[0]["distinct_order_date"] == 1

    def test_empty_input_returns_empty_dataframe(self):
        assert aggregates_to_dataframe([]).empty


class TestWindowedToDataFrame:
    """Test windowed_to_dataframe conversion."""

    def test_window_columns(self):
        """Unset window fields become NaN; enums become labels."""
        rows = [
            AggregateRow(("order_month",), (date(2013, month, 1),), Decimal(sales), 1, 1, 1, 1, 1)
            for month, sales in [(1, "100"), (2, "200")]
        ]

        df = windowed_to_dataframe(running_totals(rows, order_by=lambda r: r.dimension("order_month")))

        assert list(df["running_total"]) == [100.0, 300.0]
        assert df["trend"].isna().all()
        assert df.iloc[0]["measure"] == "total_sales"
        assert df.iloc[0]["order_month"] == date(2013, 1, 1)

    def test_empty_input_returns_empty_dataframe(self):
        assert windowed_to_dataframe([]).empty

    def test_columns_match_as_dict(self):
        """The DataFrame carries every window field that as_dict presents."""
        rows = [
            AggregateRow(("category",), (name,), Decimal(sales), 1, 1, 1, 1, 1)
            for name, sales in [("Accessories", "25"), ("Bikes", "75")]
        ]
        shares = part_to_whole(rows)

        df = windowed_to_dataframe(shares)

        assert list(df["scope_total"]) == [100.0, 100.0]
        assert list(df["percentage_of_total"]) == [25.0, 75.0]
        window_fields = set(shares[0].as_dict()) - set(rows[0].as_dict())
        assert window_fields <= set(df.columns)
