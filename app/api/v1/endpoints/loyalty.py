"""
Endpoints de fidelidad: nivel del cliente, descuento aplicable y
verificación de puntos.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, status

from app.api.v1.dependencies import get_loyalty_service
from app.api.v1.schemas.order_schemas import LoyaltyDiscountRequest, VerifyPointsRequest
from app.core.config import get_settings
from app.domain.value_objects.money import Money
from app.services.loyalty import TIERS, LoyaltyService, calculate_loyalty_discount

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/tiers", status_code=status.HTTP_200_OK)
async def list_tiers() -> dict[str, Any]:
    """Niveles de fidelidad ordenados por puntos mínimos."""
    return {
        "status": "success",
        "data": {"tiers": [tier.to_dict() for tier in TIERS], "points_per_order": settings.LOYALTY_POINTS_PER_ORDER},
    }


@router.get("/customers/{phone}", status_code=status.HTTP_200_OK)
async def get_customer_loyalty(
    phone: str,
    employee_id: str | None = Query(None, description="Limitar a los pedidos de un empleado"),
    service: LoyaltyService = Depends(get_loyalty_service),
) -> dict[str, Any]:
    """Puntos, nivel actual y siguiente nivel de un cliente."""
    loyalty = await service.get_customer_loyalty(phone, employee_id)
    return {"status": "success", "data": loyalty.to_dict()}


@router.post("/discount", status_code=status.HTTP_200_OK)
async def calculate_discount(
    request: LoyaltyDiscountRequest,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> dict[str, Any]:
    """
    Descuento del nivel del cliente sobre un subtotal.

    El descuento se redondea a múltiplos de DISCOUNT_ROUNDING_STEP y los
    niveles con entrega gratis dejan la tarifa en cero.
    """
    loyalty = await service.get_customer_loyalty(request.phone, request.employee_id)
    fee = request.delivery_fee if request.delivery_fee is not None else settings.DEFAULT_DELIVERY_FEE
    discount = calculate_loyalty_discount(
        Money.from_value(request.subtotal, settings.CURRENCY_CODE),
        Money.from_value(fee, settings.CURRENCY_CODE),
        loyalty.tier,
    )
    return {
        "status": "success",
        "data": {
            "tier": loyalty.tier.to_dict(),
            "points": loyalty.points,
            "discount": discount.discount.amount,
            "delivery_fee": discount.delivery_fee.amount,
            "delivery_waived": discount.delivery_waived,
        },
    }


@router.post("/verify-points", status_code=status.HTTP_200_OK)
async def verify_points(
    request: VerifyPointsRequest,
    service: LoyaltyService = Depends(get_loyalty_service),
) -> dict[str, Any]:
    """Compara los puntos guardados con los calculados desde los pedidos completados."""
    loyalty = await service.get_customer_loyalty(request.phone, request.employee_id)
    check = service.verify_points(loyalty, request.stored_points)
    return {"status": "success", "data": {**check, "warnings": list(loyalty.warnings)}}
