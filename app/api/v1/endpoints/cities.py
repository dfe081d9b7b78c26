"""
Endpoints de ciudades y regiones: resolución de nombres/alias, análisis de
direcciones, sincronización con el socio y recompensas mensuales por ciudad.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, status

from app.api.v1.dependencies import get_city_rewards_service, get_city_synchronizer
from app.api.v1.schemas.order_schemas import AddressParseRequest, DeliverySyncRequest
from app.services.delivery.cities import address_parser, city_alias_resolver
from app.services.delivery.cities.synchronizer import CityRegionSynchronizer
from app.services.rewards import CityRewardsService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/resolve", status_code=status.HTTP_200_OK)
async def resolve_city(
    text: str = Query(..., min_length=1, description="Nombre o alias de la ciudad"),
) -> dict[str, Any]:
    """Resuelve un nombre o alias (بغداد، البصره، نجف...) a la gobernación canónica."""
    match = city_alias_resolver.resolve(text)
    if match is None:
        return {"status": "not_found", "data": None, "message": f"City not recognized: {text}"}
    return {
        "status": "success",
        "data": {
            "city_id": match.city_id,
            "city_name": match.city_name,
            "confidence": match.confidence,
            "matched_text": match.matched_text,
        },
    }


@router.post("/parse-address", status_code=status.HTTP_200_OK)
async def parse_address(request: AddressParseRequest) -> dict[str, Any]:
    """Extrae ciudad, región y el texto restante (punto de referencia) de una dirección libre."""
    parsed = address_parser.parse(request.address)
    return {"status": "success", "data": parsed.to_dict()}


@router.post("/sync", status_code=status.HTTP_200_OK)
async def sync_cities(
    request: DeliverySyncRequest,
    synchronizer: CityRegionSynchronizer = Depends(get_city_synchronizer),
) -> dict[str, Any]:
    """Descarga ciudades y regiones del socio y las guarda con sus ids externos."""
    result = await synchronizer.sync(request.partner, token=request.token)
    return {
        "status": "success" if not result.get("errors") else "partial",
        "data": result,
        "message": f"{result.get('cities', 0)} cities, {result.get('regions', 0)} regions synced",
    }


@router.post("/rewards/monthly", status_code=status.HTTP_200_OK)
async def generate_monthly_rewards(
    service: CityRewardsService = Depends(get_city_rewards_service),
) -> dict[str, Any]:
    """Genera (una vez por mes) los beneficios de la ciudad con más pedidos y el descuento aleatorio."""
    result = await service.generate_monthly_rewards()
    return {"status": "success" if result.get("success") else "skipped", "data": result}
