"""Tests for rule-based customer and product segmentation."""

from datetime import date
from decimal import Decimal

import pytest

from sales_analytics.analyses.segmentation import (
    Condition,
    CustomerSegment,
    SegmentAssignment,
    SegmentCount,
    SegmentRule,
    SegmentRuleSet,
    cost_rule_set,
    customer_rule_set,
    segment_customers,
    segment_distribution,
    segment_products,
)
from sales_analytics.config import AnalyticsConfig
from sales_analytics.foundation.aggregation import AggregateRow
from sales_analytics.foundation.entities import Product


def customer_row(key: int, spending: str, first: date | None, last: date | None) -> AggregateRow:
    return AggregateRow(
        dimensions=("customer_key",),
        key=(key,),
        total_sales=Decimal(spending),
        total_quantity=1,
        total_orders=1,
        line_count=1,
        distinct_customers=1,
        distinct_products=1,
        first_order_date=first,
        last_order_date=last,
    )


class TestCondition:
    def test_operators(self):
        assert Condition("cost", "<", 100).holds({"cost": 99})
        assert not Condition("cost", "<", 100).holds({"cost": 100})
        assert Condition("cost", "<=", 100).holds({"cost": 100})
        assert Condition("cost", ">", 100).holds({"cost": 101})
        assert Condition("cost", ">=", 100).holds({"cost": 100})

    def test_missing_attribute_never_matches(self):
        assert not Condition("cost", "<", 100).holds({})
        assert not Condition("cost", "<", 100).holds({"cost": None})

    def test_unsupported_operator(self):
        with pytest.raises(ValueError, match="Unsupported operator"):
            Condition("cost", "==", 100)

    def test_str(self):
        assert str(Condition("cost", ">=", 100)) == "cost >= 100"


class TestSegmentRuleSet:
    def test_first_match_wins(self):
        rule_set = SegmentRuleSet(
            name="test",
            rules=(
                SegmentRule("small", (Condition("x", "<=", 10),)),
                SegmentRule("also small", (Condition("x", "<=", 20),)),
            ),
            default="big",
        )
        assert rule_set.classify({"x": 5}) == "small"
        assert rule_set.classify({"x": 15}) == "also small"
        assert rule_set.classify({"x": 25}) == "big"

    def test_default_is_required(self):
        with pytest.raises(ValueError, match="must declare a default"):
            SegmentRuleSet(name="broken", rules=(), default="")

    def test_labels_in_rule_order(self):
        assert customer_rule_set().labels == ("VIP", "REGULAR", "NEW")
        assert cost_rule_set().labels == (
            "below 100",
            "100-500",
            "500-1000",
            "above 1000",
        )


class TestCustomerSegmentation:
    """VIP / REGULAR / NEW classification."""

    @pytest.mark.parametrize(
        "spending,expected",
        [
            ("6000", "VIP"),
            ("5000", "VIP"),
            ("3000", "REGULAR"),
            ("4000", "REGULAR"),
            ("4500", "NEW"),  # between the REGULAR ceiling and the VIP floor
            ("4000.01", "NEW"),
        ],
    )
    def test_long_lived_customers(self, spending, expected):
        rule_set = customer_rule_set()
        label = rule_set.classify(
            {"lifespan_months": 14, "total_spending": Decimal(spending)}
        )
        assert label == expected

    def test_short_lifespan_is_new(self):
        rule_set = customer_rule_set()
        assert (
            rule_set.classify({"lifespan_months": 11, "total_spending": Decimal("90000")})
            == CustomerSegment.NEW.value
        )

    def test_exactly_twelve_months_qualifies(self):
        rule_set = customer_rule_set()
        assert (
            rule_set.classify({"lifespan_months": 12, "total_spending": Decimal("5000")})
            == "VIP"
        )

    def test_segment_customers_from_aggregates(self):
        rows = [
            customer_row(1, "6000", date(2012, 1, 10), date(2013, 3, 10)),
            customer_row(2, "3000", date(2012, 1, 10), date(2013, 3, 10)),
            customer_row(3, "9000", date(2013, 1, 1), date(2013, 6, 1)),
            customer_row(4, "9000", None, None),
        ]
        assignments = segment_customers(rows)
        assert [(a.entity_key, a.label) for a in assignments] == [
            (1, "VIP"),
            (2, "REGULAR"),
            (3, "NEW"),
            (4, "NEW"),
        ]
        assert assignments[0].attributes == {
            "lifespan_months": 14,
            "total_spending": Decimal("6000"),
        }
        assert assignments[3].attributes["lifespan_months"] == 0

    def test_thresholds_come_from_config(self):
        config = AnalyticsConfig(
            min_lifespan_months=6,
            vip_min_spend=Decimal("1000"),
            regular_max_spend=Decimal("1000"),
        )
        rows = [customer_row(1, "1000", date(2013, 1, 1), date(2013, 7, 1))]
        assert segment_customers(rows, config)[0].label == "VIP"


class TestProductSegmentation:
    """Product cost ranges."""

    @pytest.mark.parametrize(
        "cost,expected",
        [
            ("0", "below 100"),
            ("99.99", "below 100"),
            ("100", "100-500"),
            ("500", "100-500"),  # overlapping boundary resolved by rule order
            ("500.01", "500-1000"),
            ("1000", "500-1000"),
            ("1000.01", "above 1000"),
            ("2171.29", "above 1000"),
        ],
    )
    def test_cost_ranges(self, cost, expected):
        products = [Product(key=1, maintenance_cost=Decimal(cost))]
        assert segment_products(products)[0].label == expected

    def test_missing_cost_gets_default(self, caplog):
        products = [Product(key=1), Product(key=2, maintenance_cost=Decimal("5"))]
        with caplog.at_level("WARNING"):
            assignments = segment_products(products)
        assert [a.label for a in assignments] == ["above 1000", "below 100"]
        assert "no maintenance cost" in caplog.text

    def test_every_product_gets_one_declared_label(self):
        rule_set = cost_rule_set()
        products = [
            Product(key=i, maintenance_cost=Decimal(cost))
            for i, cost in enumerate(["1", "100", "250", "500", "750", "1000", "5000"])
        ]
        assignments = segment_products(products)
        assert len(assignments) == len(products)
        assert all(a.label in rule_set.labels for a in assignments)

    def test_custom_boundaries(self):
        config = AnalyticsConfig(
            cost_boundaries=(Decimal("10"), Decimal("20.5"), Decimal("30"))
        )
        assert cost_rule_set(config).labels == (
            "below 10",
            "10-20.5",
            "20.5-30",
            "above 30",
        )


class TestSegmentDistribution:
    def test_counts_sorted_by_size_then_label(self):
        assignments = [
            SegmentAssignment(1, "NEW"),
            SegmentAssignment(2, "VIP"),
            SegmentAssignment(3, "NEW"),
            SegmentAssignment(4, "REGULAR"),
        ]
        assert segment_distribution(assignments) == [
            SegmentCount("NEW", 2),
            SegmentCount("REGULAR", 1),
            SegmentCount("VIP", 1),
        ]

    def test_rule_set_lists_empty_segments(self):
        assignments = [SegmentAssignment(1, "100-500")]
        counts = segment_distribution(assignments, cost_rule_set())
        assert counts[0] == SegmentCount("100-500", 1)
        assert {c.label for c in counts} == set(cost_rule_set().labels)
        assert sum(c.count for c in counts) == 1

    def test_empty(self):
        assert segment_distribution([]) == []

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            SegmentCount("VIP", -1)
