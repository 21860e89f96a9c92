"""Rule-based segmentation of customers and products.

A segmentation is an ordered list of rules, each a set of numeric
conditions paired with a label. Rules are evaluated top to bottom and the
first rule whose conditions all hold wins; if none does, the rule set's
default label is returned. Segmentation is therefore total: every input
gets exactly one label from the rule set's declared labels.

Keeping the rules as data (rather than nested ``if`` statements) makes
gaps and overlaps between ranges visible. Two are kept on purpose:

- Customers with lifespan >= 12 months and spending strictly between the
  REGULAR ceiling (4000) and the VIP floor (5000) match neither rule and
  fall through to NEW.
- A product cost equal to the middle boundary (500) matches both the
  ``100-500`` and ``500-1000`` rules; rule order resolves it to ``100-500``.
"""

from __future__ import annotations

import logging
import operator
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Sequence

from sales_analytics.config import AnalyticsConfig
from sales_analytics.foundation.aggregation import AggregateRow, calculate_lifespan
from sales_analytics.foundation.entities import Product

logger = logging.getLogger(__name__)

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


class CustomerSegment(str, Enum):
    """Customer segments by lifespan and total spending."""

    VIP = "VIP"
    REGULAR = "REGULAR"
    NEW = "NEW"


@dataclass(frozen=True)
class Condition:
    """``attribute <operator> threshold``; a missing attribute never matches."""

    attribute: str
    operator: str
    threshold: Decimal | int

    def __post_init__(self) -> None:
        if self.operator not in _OPERATORS:
            raise ValueError(
                f"Unsupported operator {self.operator!r}; expected one of {sorted(_OPERATORS)}"
            )

    def holds(self, attributes: Mapping[str, Any]) -> bool:
        value = attributes.get(self.attribute)
        if value is None:
            return False
        return _OPERATORS[self.operator](value, self.threshold)

    def __str__(self) -> str:
        return f"{self.attribute} {self.operator} {self.threshold}"


@dataclass(frozen=True)
class SegmentRule:
    """A label assigned when every condition holds."""

    label: str
    conditions: tuple[Condition, ...] = ()

    def matches(self, attributes: Mapping[str, Any]) -> bool:
        return all(condition.holds(attributes) for condition in self.conditions)


@dataclass(frozen=True)
class SegmentRuleSet:
    """Ordered first-match-wins rules with a mandatory default label."""

    name: str
    rules: tuple[SegmentRule, ...]
    default: str

    def __post_init__(self) -> None:
        if not self.default:
            raise ValueError(f"Rule set {self.name!r} must declare a default label")

    @property
    def labels(self) -> tuple[str, ...]:
        """Every label this rule set can return, in rule order."""
        ordered = [rule.label for rule in self.rules] + [self.default]
        return tuple(dict.fromkeys(ordered))

    def classify(self, attributes: Mapping[str, Any]) -> str:
        for rule in self.rules:
            if rule.matches(attributes):
                return rule.label
        return self.default


@dataclass(frozen=True)
class SegmentAssignment:
    """The label assigned to one entity and the attributes it was based on."""

    entity_key: Any
    label: str
    attributes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SegmentCount:
    """Number of entities carrying a label."""

    label: str
    count: int

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError(f"Segment count cannot be negative: {self.count}")


def customer_rule_set(config: AnalyticsConfig | None = None) -> SegmentRuleSet:
    """VIP / REGULAR / NEW rules over ``lifespan_months`` and ``total_spending``."""
    config = config or AnalyticsConfig()
    long_lived = Condition("lifespan_months", ">=", config.min_lifespan_months)
    return SegmentRuleSet(
        name="customer",
        rules=(
            SegmentRule(
                CustomerSegment.VIP.value,
                (long_lived, Condition("total_spending", ">=", config.vip_min_spend)),
            ),
            SegmentRule(
                CustomerSegment.REGULAR.value,
                (long_lived, Condition("total_spending", "<=", config.regular_max_spend)),
            ),
        ),
        default=CustomerSegment.NEW.value,
    )


def cost_rule_set(config: AnalyticsConfig | None = None) -> SegmentRuleSet:
    """Product cost ranges; boundaries are inclusive on both ends."""
    config = config or AnalyticsConfig()
    low, mid, high = (_format_boundary(value) for value in config.cost_boundaries)
    low_value, mid_value, high_value = config.cost_boundaries
    return SegmentRuleSet(
        name="product_cost",
        rules=(
            SegmentRule(f"below {low}", (Condition("cost", "<", low_value),)),
            SegmentRule(
                f"{low}-{mid}",
                (Condition("cost", ">=", low_value), Condition("cost", "<=", mid_value)),
            ),
            SegmentRule(
                f"{mid}-{high}",
                (Condition("cost", ">=", mid_value), Condition("cost", "<=", high_value)),
            ),
        ),
        default=f"above {high}",
    )


def _format_boundary(value: Decimal) -> str:
    # 100 rather than 100.00 / 1E+2
    normalised = value.normalize()
    if normalised == normalised.to_integral_value():
        return str(normalised.quantize(Decimal("1")))
    return format(normalised, "f")


def segment_customers(
    customer_aggregates: Iterable[AggregateRow],
    config: AnalyticsConfig | None = None,
) -> list[SegmentAssignment]:
    """Label each per-customer aggregate row (grouped by ``customer_key``).

    Lifespan is the whole-month span between the customer's first and last
    order dates; total spending is the row's ``total_sales``.
    """
    rule_set = customer_rule_set(config)
    assignments: list[SegmentAssignment] = []
    for row in customer_aggregates:
        attributes = {
            "lifespan_months": calculate_lifespan(row.first_order_date, row.last_order_date),
            "total_spending": row.total_sales,
        }
        assignments.append(
            SegmentAssignment(
                entity_key=row.dimension("customer_key"),
                label=rule_set.classify(attributes),
                attributes=attributes,
            )
        )
    return assignments


def segment_products(
    products: Iterable[Product],
    config: AnalyticsConfig | None = None,
) -> list[SegmentAssignment]:
    """Label each product by its maintenance cost.

    A product with no recorded cost matches no range rule and receives the
    default (top) label.
    """
    rule_set = cost_rule_set(config)
    assignments = [
        SegmentAssignment(
            entity_key=product.key,
            label=rule_set.classify({"cost": product.maintenance_cost}),
            attributes={"cost": product.maintenance_cost},
        )
        for product in products
    ]
    missing_cost = sum(1 for a in assignments if a.attributes["cost"] is None)
    if missing_cost:
        logger.warning(
            f"{missing_cost} products have no maintenance cost; "
            f"assigned default segment {rule_set.default!r}"
        )
    return assignments


def segment_distribution(
    assignments: Sequence[SegmentAssignment],
    rule_set: SegmentRuleSet | None = None,
) -> list[SegmentCount]:
    """Count entities per label, largest segment first.

    Ties are broken by label ascending. When ``rule_set`` is given every
    label it declares is listed, including empty ones.
    """
    counts = Counter(assignment.label for assignment in assignments)
    if rule_set is not None:
        for label in rule_set.labels:
            counts.setdefault(label, 0)
    return [
        SegmentCount(label=label, count=count)
        for label, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]
