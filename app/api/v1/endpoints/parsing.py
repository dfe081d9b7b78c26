"""
Endpoint de análisis de pedidos escritos como texto libre (WhatsApp / Telegram).
"""

import logging
from typing import Any

from fastapi import APIRouter, status

from app.api.v1.schemas.order_schemas import ParseOrderTextRequest
from app.services.parsing import parse_order_text

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/order-text", status_code=status.HTTP_200_OK)
async def parse_order(request: ParseOrderTextRequest) -> dict[str, Any]:
    """
    Detecta el tipo de pedido (normal, استبدال, ارجاع) y extrae cliente,
    productos y montos.

    Un texto incompleto devuelve 422 con el campo que falta.
    """
    parsed = parse_order_text(request.text)
    logger.info(f"📝 Parsed {parsed.order_type} order for {parsed.customer.name}")
    return {"status": "success", "data": parsed.to_dict()}
