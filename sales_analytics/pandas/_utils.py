"""Shared utilities for pandas conversion operations."""

from decimal import Decimal
from typing import Optional

from sales_analytics.foundation.aggregation import round_currency


def decimal_to_float(value: Optional[Decimal]) -> Optional[float]:
    """Round a Decimal to cents and convert it to float for pandas.

    ``None`` is passed through so that pandas stores it as NaN.
    """
    if value is None:
        return None
    return float(round_currency(value))
