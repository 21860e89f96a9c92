"""Pandas DataFrame adapters for the customer report."""

from typing import Optional, Sequence
import pandas as pd  # type: ignore

from sales_analytics.analyses.report import CustomerReportRow, build_customer_report
from sales_analytics.config import AnalyticsConfig
from sales_analytics.foundation.row_source import DataFrameRowSource
from ._utils import decimal_to_float

REPORT_COLUMNS = [
    "customer_key",
    "customer_number",
    "customer_name",
    "segment",
    "first_order_date",
    "last_order_date",
    "recency",
    "total_orders",
    "total_sales",
    "total_quantity",
    "total_products",
    "lifespan",
    "avg_order_value",
    "avg_monthly_spend",
]


def report_to_dataframe(report: Sequence[CustomerReportRow]) -> pd.DataFrame:
    """Convert customer report rows to a DataFrame.

    Row order is preserved (total sales descending). Currency columns are
    rounded to cents.

    Args:
        report: Rows from build_customer_report

    Returns:
        DataFrame with one row per customer and REPORT_COLUMNS as columns

    Example:
        >>> report = build_customer_report(sales, customers, products)
        >>> report_to_dataframe(report).head()
    """
    if not report:
        return pd.DataFrame(columns=REPORT_COLUMNS)

    rows = [
        {
            "customer_key": row.customer_key,
            "customer_number": row.customer_number,
            "customer_name": row.customer_name,
            "segment": row.segment,
            "first_order_date": row.first_order_date,
            "last_order_date": row.last_order_date,
            "recency": row.recency,
            "total_orders": row.total_orders,
            "total_sales": decimal_to_float(row.total_sales),
            "total_quantity": row.total_quantity,
            "total_products": row.total_products,
            "lifespan": row.lifespan,
            "avg_order_value": decimal_to_float(row.avg_order_value),
            "avg_monthly_spend": decimal_to_float(row.avg_monthly_spend),
        }
        for row in report
    ]
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def build_customer_report_df(
    sales_df: pd.DataFrame,
    customers_df: pd.DataFrame,
    products_df: pd.DataFrame,
    config: Optional[AnalyticsConfig] = None,
) -> pd.DataFrame:
    """Build the customer report straight from warehouse DataFrames.

    Convenience function combining conversion and report generation.

    Raises:
        DataAccessError: If a DataFrame is missing required columns or
            holds values that cannot be converted

    Example:
        >>> report_df = build_customer_report_df(sales_df, customers_df, products_df)
        >>> report_df.to_csv('customer_report.csv', index=False)
    """
    source = DataFrameRowSource(
        customers=customers_df, products=products_df, sales=sales_df
    )
    report = build_customer_report(
        source.fetch_sales(),
        source.fetch_customers(),
        source.fetch_products(),
        config,
    )
    return report_to_dataframe(report)
