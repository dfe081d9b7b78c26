"""
Customer loyalty.

Each completed order (with the courier receipt received) is worth a fixed
number of points. Points decide the tier, and the tier gives a discount on
the items subtotal and, for the upper tiers, free delivery.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from app.core.config import get_settings
from app.db.repositories import OrderRepository
from app.domain.models import CustomerLoyalty, LoyaltyDiscount, LoyaltyTier
from app.domain.value_objects.money import Money
from app.utils.error_handler import ValidationException
from app.utils.phone_utils import normalize_phone

settings = get_settings()
logger = logging.getLogger(__name__)

TIERS = (
    LoyaltyTier(code="BRNZ", name="برونزي", min_points=0, discount_percentage=Decimal("0")),
    LoyaltyTier(code="SILV", name="فضي", min_points=750, discount_percentage=Decimal("5")),
    LoyaltyTier(code="GOLD", name="ذهبي", min_points=1500, discount_percentage=Decimal("10"), free_delivery=True),
    LoyaltyTier(code="DIAM", name="ماسي", min_points=3000, discount_percentage=Decimal("15"), free_delivery=True),
)

TIERS_BY_CODE = {tier.code: tier for tier in TIERS}


def tier_for_points(points: int) -> LoyaltyTier:
    """Highest tier whose threshold is reached."""
    if points < 0:
        raise ValidationException(message="Points cannot be negative", field="points", invalid_value=points)
    current = TIERS[0]
    for tier in TIERS:
        if points >= tier.min_points:
            current = tier
    return current


def next_tier(tier: LoyaltyTier) -> Optional[LoyaltyTier]:
    index = TIERS.index(tier)
    return TIERS[index + 1] if index + 1 < len(TIERS) else None


def calculate_loyalty_discount(
    subtotal: Money,
    delivery_fee: Money,
    tier: LoyaltyTier,
    rounding_step: int = settings.DISCOUNT_ROUNDING_STEP,
) -> LoyaltyDiscount:
    """
    Discount of a tier on an order.

    The discount is rounded to the nearest ``rounding_step`` dinars and never
    exceeds the subtotal. The delivery fee drops to zero on free-delivery tiers.
    """
    raw = subtotal * (tier.discount_percentage / Decimal("100"))
    discount = raw.round_to_step(rounding_step).max_zero()
    if discount > subtotal:
        discount = subtotal

    fee = Money.zero(delivery_fee.currency) if tier.free_delivery else delivery_fee
    return LoyaltyDiscount(tier=tier, discount=discount, delivery_fee=fee, original_delivery_fee=delivery_fee)


class LoyaltyService:
    """Loyalty lookups for a customer phone."""

    def __init__(self, order_repository: OrderRepository, points_per_order: int = settings.LOYALTY_POINTS_PER_ORDER):
        self.order_repository = order_repository
        self.points_per_order = points_per_order

    async def get_customer_loyalty(self, phone: str, employee_id: Optional[str] = None) -> CustomerLoyalty:
        """
        Loyalty of a customer.

        Args:
            phone: Customer phone in any format
            employee_id: Count only the orders created by this employee

        Returns:
            CustomerLoyalty: Orders, points, spent amount (without delivery) and tier
        """
        normalized = normalize_phone(phone)
        if not normalized:
            raise ValidationException(message="Phone is required", field="phone", invalid_value=phone)

        orders = await self.order_repository.get_customer_completed_orders(normalized, employee_id)

        spent = Money.zero(settings.CURRENCY_CODE)
        customer_name = None
        for order in orders:
            final_amount = Money.from_value(order.get("final_amount"), settings.CURRENCY_CODE)
            delivery_fee = Money.from_value(order.get("delivery_fee"), settings.CURRENCY_CODE)
            spent = spent + (final_amount - delivery_fee).max_zero()
            customer_name = order.get("customer_name") or customer_name

        points = len(orders) * self.points_per_order
        tier = tier_for_points(points)
        loyalty = CustomerLoyalty(
            phone=normalized,
            customer_name=customer_name,
            completed_orders=len(orders),
            points=points,
            total_spent_excl_delivery=spent,
            tier=tier,
            next_tier=next_tier(tier),
        )
        logger.debug(f"Loyalty {normalized}: {len(orders)} orders, {points} points, tier {tier.code}")
        return loyalty

    def verify_points(self, loyalty: CustomerLoyalty, stored_points: Optional[int]) -> Dict[str, Any]:
        """Compare the computed points with the value stored on the customer record."""
        stored = int(stored_points or 0)
        difference = loyalty.points - stored
        if difference:
            message = f"النقاط المخزنة ({stored}) لا تطابق النقاط المحسوبة ({loyalty.points})"
            loyalty.warnings.append(message)
            logger.warning(
                f"⚠️ Loyalty points mismatch for {loyalty.phone}: stored {stored}, expected {loyalty.points}"
            )
        return {"matches": difference == 0, "expected": loyalty.points, "stored": stored, "difference": difference}
