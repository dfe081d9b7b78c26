"""
CityRewardRepository: monthly city benefits and random city discounts.
"""

import logging
from typing import Any, Dict, List, Optional

from app.db.repositories.base import BaseRepository, log_operation

logger = logging.getLogger(__name__)


class CityRewardRepository(BaseRepository):
    """Repository for city_monthly_benefits and city_random_discounts."""

    TABLES = ("city_monthly_benefits", "city_random_discounts")

    async def get_benefits(self, year: int, month: int, city_name: str | None = None) -> List[Dict[str, Any]]:
        return await self.fetch_all(
            """
            SELECT id, city_name, year, month, benefit_type, benefit_value, max_usage, current_usage, is_active
            FROM city_monthly_benefits
            WHERE year = :year AND month = :month
              AND (CAST(:city_name AS TEXT) IS NULL OR city_name = CAST(:city_name AS TEXT))
            """,
            {"year": year, "month": month, "city_name": city_name},
        )

    @log_operation()
    async def insert_benefit(self, benefit: Dict[str, Any]) -> int:
        return await self.execute_query_with_commit(
            """
            INSERT INTO city_monthly_benefits
                (city_name, year, month, benefit_type, benefit_value, max_usage, current_usage, is_active)
            VALUES
                (:city_name, :year, :month, :benefit_type, :benefit_value, :max_usage, 0, TRUE)
            """,
            benefit,
        )

    async def get_random_discount(self, year: int, month: int) -> Optional[Dict[str, Any]]:
        return await self.fetch_one(
            """
            SELECT id, city_name, discount_year, discount_month, discount_percentage
            FROM city_random_discounts
            WHERE discount_year = :year AND discount_month = :month
            LIMIT 1
            """,
            {"year": year, "month": month},
        )

    @log_operation()
    async def insert_random_discount(self, city_name: str, year: int, month: int, percentage: int) -> int:
        return await self.execute_query_with_commit(
            """
            INSERT INTO city_random_discounts (city_name, discount_year, discount_month, discount_percentage)
            VALUES (:city_name, :year, :month, :percentage)
            """,
            {"city_name": city_name, "year": year, "month": month, "percentage": percentage},
        )
