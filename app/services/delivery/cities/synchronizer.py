"""
Cities/regions cache synchronization with a courier.
"""

import logging
import time
from typing import Any, Dict

from app.core.logging_config import log_delivery_operation
from app.db.repositories import CityRepository
from app.services.delivery.clients import WaseetClient
from app.utils.error_handler import AppException

logger = logging.getLogger(__name__)


class CityRegionSynchronizer:
    """
    Refresh ``cities_cache`` and ``regions_cache`` from the courier lookups.

    A failure on one city's regions is recorded and the sync continues with
    the next city; a failure fetching the city list aborts the sync.
    """

    def __init__(self, city_repository: CityRepository, client_factory=WaseetClient):
        self.city_repository = city_repository
        self.client_factory = client_factory

    async def sync(self, partner: str, token: str | None = None) -> Dict[str, Any]:
        started = time.time()
        stats: Dict[str, Any] = {"partner": partner, "cities": 0, "regions": 0, "errors": []}

        logger.info(f"🗺️ Starting cities/regions sync for {partner}")

        async with self.client_factory(partner, token) as client:
            cities = await client.get_cities()

            for city in cities:
                external_id = city.get("id")
                city_name = (city.get("city_name") or city.get("name") or "").strip()
                if external_id is None or not city_name:
                    stats["errors"].append({"city": city, "error": "missing id or name"})
                    continue

                try:
                    local_city_id = await self.city_repository.upsert_city(partner, str(external_id), city_name)
                    stats["cities"] += 1

                    regions = await client.get_regions(external_id)
                    for region in regions:
                        region_name = (region.get("region_name") or region.get("name") or "").strip()
                        if region.get("id") is None or not region_name:
                            continue
                        await self.city_repository.upsert_region(
                            partner, local_city_id, str(region["id"]), region_name
                        )
                        stats["regions"] += 1

                except AppException as e:
                    logger.warning(f"⚠️ Regions sync failed for {city_name}: {e.message}")
                    stats["errors"].append({"city": city_name, "error": e.message})

        stats["duration_seconds"] = round(time.time() - started, 2)
        log_delivery_operation(
            "sync_cities_regions",
            partner,
            cities=stats["cities"],
            regions=stats["regions"],
            errors=len(stats["errors"]),
        )
        logger.info(
            f"✅ Cities sync for {partner}: {stats['cities']} cities, {stats['regions']} regions, "
            f"{len(stats['errors'])} errors in {stats['duration_seconds']}s"
        )
        return stats
