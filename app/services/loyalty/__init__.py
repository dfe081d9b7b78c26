"""Customer loyalty tiers and discounts."""

from .loyalty_service import TIERS, LoyaltyService, calculate_loyalty_discount, next_tier, tier_for_points

__all__ = ["TIERS", "LoyaltyService", "calculate_loyalty_discount", "next_tier", "tier_for_points"]
