"""
Customer loyalty domain models.

Loyalty is computed per customer phone from completed orders; each tier
grants a percentage discount and, for the upper tiers, free delivery.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from app.domain.value_objects.money import Money


@dataclass(frozen=True)
class LoyaltyTier:
    """
    A loyalty level.

    Attributes:
        code: Short stable code (BRNZ, SILV, GOLD, DIAM)
        name: Arabic display name
        min_points: Points needed to reach the tier
        discount_percentage: Discount on the items subtotal
        free_delivery: Whether the delivery fee is waived
    """

    code: str
    name: str
    min_points: int
    discount_percentage: Decimal
    free_delivery: bool = False

    def __post_init__(self) -> None:
        if self.min_points < 0:
            raise ValueError(f"min_points cannot be negative: {self.min_points}")
        if not Decimal("0") <= self.discount_percentage <= Decimal("100"):
            raise ValueError(f"Invalid discount percentage: {self.discount_percentage}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "min_points": self.min_points,
            "discount_percentage": self.discount_percentage,
            "free_delivery": self.free_delivery,
        }


@dataclass
class CustomerLoyalty:
    """Loyalty snapshot for one customer phone."""

    phone: str
    completed_orders: int
    points: int
    total_spent_excl_delivery: Money
    tier: LoyaltyTier
    customer_name: str | None = None
    next_tier: LoyaltyTier | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def points_to_next_tier(self) -> int | None:
        if self.next_tier is None:
            return None
        return max(0, self.next_tier.min_points - self.points)

    def to_dict(self) -> dict[str, Any]:
        return {
            "phone": self.phone,
            "customer_name": self.customer_name,
            "completed_orders": self.completed_orders,
            "points": self.points,
            "total_spent_excl_delivery": self.total_spent_excl_delivery.amount,
            "tier": self.tier.to_dict(),
            "next_tier": self.next_tier.to_dict() if self.next_tier else None,
            "points_to_next_tier": self.points_to_next_tier,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class LoyaltyDiscount:
    """Result of applying a tier to an order."""

    tier: LoyaltyTier
    discount: Money
    delivery_fee: Money
    original_delivery_fee: Money

    @property
    def delivery_waived(self) -> bool:
        return self.delivery_fee.is_zero and not self.original_delivery_fee.is_zero
