"""Configuration for the analytics pipeline."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AnalyticsConfig(BaseModel):
    """Thresholds and reference date used by segmentation and reporting.

    Examples
    --------
    >>> config = AnalyticsConfig(reference_date=date(2014, 1, 1))
    >>> config.vip_min_spend
    Decimal('5000')
    >>> config.cost_boundaries
    (Decimal('100'), Decimal('500'), Decimal('1000'))
    """

    model_config = ConfigDict(frozen=True)

    reference_date: date | None = Field(
        default=None,
        description="Date recency is measured against. Defaults to today when unset.",
    )
    min_lifespan_months: int = Field(
        default=12,
        ge=0,
        description="Minimum lifespan (months) for a customer to be VIP or REGULAR",
    )
    vip_min_spend: Decimal = Field(
        default=Decimal("5000"),
        ge=0,
        description="Total spending at or above which a long-lived customer is VIP",
    )
    regular_max_spend: Decimal = Field(
        default=Decimal("4000"),
        ge=0,
        description="Total spending at or below which a long-lived customer is REGULAR",
    )
    cost_boundaries: tuple[Decimal, Decimal, Decimal] = Field(
        default=(Decimal("100"), Decimal("500"), Decimal("1000")),
        description="Product cost segment boundaries (low, mid, high)",
    )

    @field_validator("cost_boundaries")
    @classmethod
    def _boundaries_increasing(
        cls, value: tuple[Decimal, Decimal, Decimal]
    ) -> tuple[Decimal, Decimal, Decimal]:
        low, mid, high = value
        if not low < mid < high:
            raise ValueError(
                f"cost_boundaries must be strictly increasing, got {tuple(value)}"
            )
        return value

    @model_validator(mode="after")
    def _spend_thresholds_ordered(self) -> "AnalyticsConfig":
        if self.regular_max_spend > self.vip_min_spend:
            raise ValueError(
                f"regular_max_spend ({self.regular_max_spend}) cannot exceed "
                f"vip_min_spend ({self.vip_min_spend})"
            )
        return self

    def resolve_reference_date(self) -> date:
        """Return the configured reference date, or today when unset."""
        if self.reference_date is not None:
            return self.reference_date
        return date.today()
