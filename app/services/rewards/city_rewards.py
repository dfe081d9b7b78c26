"""
Monthly city rewards.

The city with the most delivered orders in the month (Asia/Baghdad calendar)
gets a free delivery and a 5% discount with free delivery. One other city,
picked at random, gets a 5% discount for the month.
"""

import logging
import random
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pytz

from app.core.config import get_settings
from app.db.repositories import CityRewardRepository, OrderRepository

settings = get_settings()
logger = logging.getLogger(__name__)

BENEFIT_FREE_DELIVERY = "free_delivery"
BENEFIT_DISCOUNT_WITH_FREE_DELIVERY = "discount_with_free_delivery"


def month_bounds(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> Tuple[int, int, datetime, datetime]:
    """
    Year, month and ``[start, end)`` of the current business month.

    Returns:
        tuple: (year, month, start, end) with timezone-aware bounds
    """
    tz = pytz.timezone(tz_name or settings.BUSINESS_TIMEZONE)
    now = now.astimezone(tz) if now else datetime.now(tz)

    start = tz.localize(datetime(now.year, now.month, 1))
    if now.month == 12:
        end = tz.localize(datetime(now.year + 1, 1, 1))
    else:
        end = tz.localize(datetime(now.year, now.month + 1, 1))
    return now.year, now.month, start, end


class CityRewardsService:
    def __init__(
        self,
        order_repository: OrderRepository,
        reward_repository: CityRewardRepository,
        rng: Optional[random.Random] = None,
    ):
        self.order_repository = order_repository
        self.reward_repository = reward_repository
        self.rng = rng or random.Random()

    def top_benefits(self, city_name: str, year: int, month: int) -> List[Dict[str, Any]]:
        base = {"city_name": city_name, "year": year, "month": month, "max_usage": 1}
        return [
            {**base, "benefit_type": BENEFIT_FREE_DELIVERY, "benefit_value": 100},
            {
                **base,
                "benefit_type": BENEFIT_DISCOUNT_WITH_FREE_DELIVERY,
                "benefit_value": settings.CITY_REWARD_DISCOUNT_PERCENT,
            },
        ]

    async def generate_monthly_rewards(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Create this month's rewards. Running it twice in the same month does
        not create duplicates.

        Returns:
            dict: top city, created benefits and the random discount city
        """
        year, month, start, end = month_bounds(now)
        logger.info(f"🎁 Generating city rewards for {month}/{year}")

        stats = await self.order_repository.count_orders_by_city(start, end)
        if not stats:
            logger.info(f"⚠️ No orders for {month}/{year}, no rewards")
            return {"success": False, "year": year, "month": month, "message": "no_orders"}

        top = stats[0]
        top_city = top["city_name"]
        result: Dict[str, Any] = {
            "success": True,
            "year": year,
            "month": month,
            "city": top_city,
            "total_orders": int(top["orders_count"]),
            "total_amount": top["total_amount"],
            "benefits_created": 0,
            "random_discount_city": None,
        }

        existing = await self.reward_repository.get_benefits(year, month, top_city)
        if existing:
            logger.info(f"✅ Rewards for {top_city} already exist for {month}/{year}")
        else:
            for benefit in self.top_benefits(top_city, year, month):
                await self.reward_repository.insert_benefit(benefit)
                result["benefits_created"] += 1
            logger.info(f"🏆 {top_city} wins {month}/{year} with {result['total_orders']} orders")

        result["random_discount_city"] = await self._ensure_random_discount(stats, top_city, year, month)
        return result

    async def _ensure_random_discount(
        self, stats: List[Dict[str, Any]], top_city: str, year: int, month: int
    ) -> Optional[str]:
        current = await self.reward_repository.get_random_discount(year, month)
        if current:
            return current["city_name"]

        candidates = [row["city_name"] for row in stats if row["city_name"] != top_city]
        if not candidates:
            logger.info("ℹ️ No other city with orders for the random discount")
            return None

        city = self.rng.choice(candidates)
        await self.reward_repository.insert_random_discount(city, year, month, settings.CITY_REWARD_DISCOUNT_PERCENT)
        logger.info(f"🎲 Random {settings.CITY_REWARD_DISCOUNT_PERCENT}% discount for {city} in {month}/{year}")
        return city
