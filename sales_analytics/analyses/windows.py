"""Window computations over aggregated rows.

These are the in-memory counterparts of SQL window functions:

- running totals (``SUM() OVER (ORDER BY ...)``)
- partition-average comparison (``AVG() OVER (PARTITION BY ...)``)
- period-over-period change (``LAG() OVER (PARTITION BY ... ORDER BY ...)``)
- part-to-whole share (``value / SUM() OVER ()``)

Partition and sort keys are always passed explicitly. Rows with equal sort
keys are ordered by their group key (``AggregateRow.key``, nulls last),
which is unique per row, so every ordering is total and deterministic.
Every function returns new :class:`WindowedRow` objects sorted by
partition, sort key, then group key; inputs are never mutated.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, replace
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Callable, Hashable, Iterable, Sequence, TypeVar

from sales_analytics.foundation.aggregation import (
    AggregateRow,
    null_safe_key,
    round_currency,
    safe_divide,
)

# Percentages are presented with 2 decimal places.
PERCENTAGE_PRECISION = Decimal("0.01")

PartitionKey = Callable[[AggregateRow], Hashable]
SortKey = Callable[[AggregateRow], Any]
Label = TypeVar("Label", bound=Enum)


class AverageComparison(str, Enum):
    """Position of a value relative to its partition average."""

    ABOVE = "above avg"
    BELOW = "below avg"
    EQUAL = "avg"


class Trend(str, Enum):
    """Change of a value against the previous row in its partition."""

    INCREASING = "increasing"
    DECREASING = "decreasing"
    NO_CHANGE = "no change"
    NO_PRIOR_DATA = "no prior data"


@dataclass(frozen=True)
class WindowedRow:
    """An aggregate row plus the window values derived for it.

    Attributes
    ----------
    row:
        The underlying aggregate row.
    measure:
        Name of the measure the windows were computed on.
    value:
        The measure value for this row.
    running_total:
        Prefix sum of ``value`` within the partition, in sort order.
    partition_avg:
        Mean of ``value`` over every row in the partition.
    avg_diff:
        ``value - partition_avg``.
    avg_comparison:
        Strict sign of ``avg_diff``.
    prior_value:
        ``value`` of the previous row in the partition, ``None`` for the first.
    delta:
        ``value - prior_value``, ``None`` for the first row.
    trend:
        Direction of ``delta``; ``NO_PRIOR_DATA`` for the first row.
    scope_total:
        Sum of ``value`` over the part-to-whole scope.
    percentage_of_total:
        ``100 * value / scope_total`` (unrounded), 0 when the scope sums to 0.

    Window fields are ``None`` until the corresponding function has run.
    """

    row: AggregateRow
    measure: str
    value: Decimal
    running_total: Decimal | None = None
    partition_avg: Decimal | None = None
    avg_diff: Decimal | None = None
    avg_comparison: AverageComparison | None = None
    prior_value: Decimal | None = None
    delta: Decimal | None = None
    trend: Trend | None = None
    scope_total: Decimal | None = None
    percentage_of_total: Decimal | None = None

    @property
    def key(self) -> tuple[Any, ...]:
        return self.row.key

    def dimension(self, name: str) -> Any:
        return self.row.dimension(name)

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable mapping, rounded for presentation."""
        payload = self.row.as_dict()
        payload["measure"] = self.measure
        payload["value"] = _present(self.value)
        payload["running_total"] = _present(self.running_total)
        payload["partition_avg"] = _present(self.partition_avg)
        payload["avg_diff"] = _present(self.avg_diff)
        payload["avg_comparison"] = (
            self.avg_comparison.value if self.avg_comparison else None
        )
        payload["prior_value"] = _present(self.prior_value)
        payload["delta"] = _present(self.delta)
        payload["trend"] = self.trend.value if self.trend else None
        payload["scope_total"] = _present(self.scope_total)
        payload["percentage_of_total"] = _present(self.percentage_of_total)
        return payload


def _present(value: Decimal | None) -> float | None:
    rounded = round_currency(value)
    return None if rounded is None else float(rounded)


def _to_windowed(
    rows: Iterable[AggregateRow | WindowedRow], measure: str
) -> list[WindowedRow]:
    windowed: list[WindowedRow] = []
    for item in rows:
        if isinstance(item, WindowedRow):
            if item.measure != measure:
                item = WindowedRow(
                    row=item.row, measure=measure, value=_measure_value(item.row, measure)
                )
            windowed.append(item)
        elif isinstance(item, AggregateRow):
            windowed.append(
                WindowedRow(row=item, measure=measure, value=_measure_value(item, measure))
            )
        else:
            raise TypeError(
                f"Expected AggregateRow or WindowedRow, got {type(item).__name__}"
            )
    return windowed


def _measure_value(row: AggregateRow, measure: str) -> Decimal:
    value = row.measure(measure)
    if value is None:
        # An empty average contributes nothing to a window
        return Decimal("0")
    return value if isinstance(value, Decimal) else Decimal(value)


def _partition(
    rows: Sequence[WindowedRow],
    partition_by: PartitionKey | None,
    order_by: SortKey | None,
) -> list[list[WindowedRow]]:
    """Split rows into partitions, each sorted by (order key, group key)."""
    groups: dict[Hashable, list[WindowedRow]] = defaultdict(list)
    for item in rows:
        part = None if partition_by is None else partition_by(item.row)
        groups[part].append(item)

    def row_order(item: WindowedRow) -> tuple:
        order = None if order_by is None else order_by(item.row)
        return (null_safe_key(order), null_safe_key(item.row.key))

    ordered_parts = sorted(groups, key=null_safe_key)
    return [sorted(groups[part], key=row_order) for part in ordered_parts]


def running_totals(
    rows: Iterable[AggregateRow | WindowedRow],
    order_by: SortKey,
    partition_by: PartitionKey | None = None,
    measure: str = "total_sales",
) -> list[WindowedRow]:
    """Cumulative sum of ``measure`` per partition in ``order_by`` order.

    Examples
    --------
    >>> from decimal import Decimal
    >>> from datetime import date
    >>> from sales_analytics.foundation.aggregation import AggregateRow
    >>> def month_row(month, sales):
    ...     return AggregateRow(("order_month",), (date(2013, month, 1),),
    ...                         Decimal(sales), 1, 1, 1, 1, 1)
    >>> rows = [month_row(2, 200), month_row(1, 100), month_row(3, 150)]
    >>> result = running_totals(rows, order_by=lambda r: r.dimension("order_month"))
    >>> [int(r.running_total) for r in result]
    [100, 300, 450]
    """
    windowed = _to_windowed(rows, measure)
    result: list[WindowedRow] = []
    for part in _partition(windowed, partition_by, order_by):
        total = Decimal("0")
        for item in part:
            total += item.value
            result.append(replace(item, running_total=total))
    return result


def compare_to_partition_average(
    rows: Iterable[AggregateRow | WindowedRow],
    partition_by: PartitionKey | None = None,
    order_by: SortKey | None = None,
    measure: str = "total_sales",
) -> list[WindowedRow]:
    """Compare each value to the average of its whole partition.

    The classification uses the exact sign of the difference; there is no
    tolerance band, so any non-zero difference is above or below.
    ``order_by`` only affects output order, never the averages.
    """
    windowed = _to_windowed(rows, measure)
    result: list[WindowedRow] = []
    for part in _partition(windowed, partition_by, order_by):
        total = sum((item.value for item in part), Decimal("0"))
        average = safe_divide(total, len(part))
        for item in part:
            diff = item.value - average
            result.append(
                replace(
                    item,
                    partition_avg=average,
                    avg_diff=diff,
                    avg_comparison=_classify_sign(
                        diff,
                        AverageComparison.ABOVE,
                        AverageComparison.BELOW,
                        AverageComparison.EQUAL,
                    ),
                )
            )
    return result


def period_over_period(
    rows: Iterable[AggregateRow | WindowedRow],
    order_by: SortKey,
    partition_by: PartitionKey | None = None,
    measure: str = "total_sales",
) -> list[WindowedRow]:
    """Compare each value with the previous row of its partition.

    The first row of a partition has no prior value; it is reported as
    :attr:`Trend.NO_PRIOR_DATA` with ``prior_value`` and ``delta`` left as
    ``None``. :attr:`Trend.NO_CHANGE` is reserved for an actual zero delta.
    """
    windowed = _to_windowed(rows, measure)
    result: list[WindowedRow] = []
    for part in _partition(windowed, partition_by, order_by):
        previous: Decimal | None = None
        for position, item in enumerate(part):
            if position == 0:
                result.append(
                    replace(item, prior_value=None, delta=None, trend=Trend.NO_PRIOR_DATA)
                )
            else:
                delta = item.value - previous
                result.append(
                    replace(
                        item,
                        prior_value=previous,
                        delta=delta,
                        trend=_classify_sign(
                            delta, Trend.INCREASING, Trend.DECREASING, Trend.NO_CHANGE
                        ),
                    )
                )
            previous = item.value
    return result


def part_to_whole(
    rows: Iterable[AggregateRow | WindowedRow],
    partition_by: PartitionKey | None = None,
    order_by: SortKey | None = None,
    measure: str = "total_sales",
) -> list[WindowedRow]:
    """Express each value as a percentage of its scope total.

    The scope is the whole input when ``partition_by`` is ``None``, else the
    partition. Percentages are kept unrounded so they sum to 100 within
    rounding; a scope that sums to zero yields 0 for every row.
    """
    windowed = _to_windowed(rows, measure)
    result: list[WindowedRow] = []
    for part in _partition(windowed, partition_by, order_by):
        scope_total = sum((item.value for item in part), Decimal("0"))
        for item in part:
            share = safe_divide(item.value * 100, scope_total)
            result.append(replace(item, scope_total=scope_total, percentage_of_total=share))
    return result


def analyze_windows(
    rows: Iterable[AggregateRow | WindowedRow],
    order_by: SortKey,
    partition_by: PartitionKey | None = None,
    measure: str = "total_sales",
    share_partition_by: PartitionKey | None = None,
) -> list[WindowedRow]:
    """Apply every window computation in one pass.

    ``partition_by`` scopes the running total, average comparison, and
    period-over-period change. ``share_partition_by`` scopes the
    part-to-whole share and defaults to the whole input.
    """
    result = part_to_whole(rows, partition_by=share_partition_by, measure=measure)
    result = running_totals(result, order_by=order_by, partition_by=partition_by, measure=measure)
    result = compare_to_partition_average(
        result, partition_by=partition_by, order_by=order_by, measure=measure
    )
    return period_over_period(
        result, order_by=order_by, partition_by=partition_by, measure=measure
    )


def rounded_percentage(value: Decimal | None) -> Decimal | None:
    """Round a percentage for presentation (2 dp, half-up)."""
    if value is None:
        return None
    return value.quantize(PERCENTAGE_PRECISION, rounding=ROUND_HALF_UP)


def _classify_sign(value: Decimal, positive: Label, negative: Label, zero: Label) -> Label:
    if value > 0:
        return positive
    if value < 0:
        return negative
    return zero
