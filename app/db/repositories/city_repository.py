"""
CityRepository: cities/regions cache with the courier ids, plus city aliases.
"""

import logging
from typing import Any, Dict, List

from app.db.repositories.base import BaseRepository, log_operation

logger = logging.getLogger(__name__)


class CityRepository(BaseRepository):
    """Repository for cities_cache and regions_cache."""

    TABLES = ("cities_cache", "regions_cache")

    async def get_cities(self, partner: str | None = None) -> List[Dict[str, Any]]:
        return await self.fetch_all(
            """
            SELECT id, name, external_id, delivery_partner
            FROM cities_cache
            WHERE is_active = TRUE
              AND (CAST(:partner AS TEXT) IS NULL OR delivery_partner = CAST(:partner AS TEXT))
            ORDER BY name
            """,
            {"partner": partner},
        )

    async def get_regions(self, city_id: str) -> List[Dict[str, Any]]:
        return await self.fetch_all(
            """
            SELECT id, name, external_id, city_id
            FROM regions_cache
            WHERE city_id = :city_id AND is_active = TRUE
            ORDER BY name
            """,
            {"city_id": city_id},
        )

    @log_operation()
    async def upsert_city(self, partner: str, external_id: str, name: str) -> str:
        """Insert or refresh a city by (delivery_partner, external_id); returns the local id."""
        row = await self.execute_query_with_commit(
            """
            INSERT INTO cities_cache (delivery_partner, external_id, name, is_active, updated_at)
            VALUES (:partner, :external_id, :name, TRUE, NOW())
            ON CONFLICT (delivery_partner, external_id)
            DO UPDATE SET name = EXCLUDED.name, is_active = TRUE, updated_at = NOW()
            RETURNING id
            """,
            {"partner": partner, "external_id": str(external_id), "name": name},
        )
        return str(row["id"])

    @log_operation()
    async def upsert_region(self, partner: str, city_id: str, external_id: str, name: str) -> str:
        row = await self.execute_query_with_commit(
            """
            INSERT INTO regions_cache (delivery_partner, city_id, external_id, name, is_active, updated_at)
            VALUES (:partner, :city_id, :external_id, :name, TRUE, NOW())
            ON CONFLICT (delivery_partner, external_id)
            DO UPDATE SET name = EXCLUDED.name, city_id = EXCLUDED.city_id, is_active = TRUE, updated_at = NOW()
            RETURNING id
            """,
            {"partner": partner, "city_id": city_id, "external_id": str(external_id), "name": name},
        )
        return str(row["id"])
