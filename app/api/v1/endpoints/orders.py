"""
Endpoints de pedidos: creación, edición, eliminación y flujos financieros
(entrega parcial, estado de devolución, vínculo con el pedido original).

Los errores de negocio se propagan como AppException y los convierte
``app.core.exception_handlers``.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, status

from app.api.v1.dependencies import (
    get_invoice_receipt_service,
    get_orchestrator,
    get_order_repository,
    get_partial_delivery_handler,
    get_return_linker,
    get_return_status_handler,
)
from app.api.v1.schemas.order_schemas import (
    CreateOrderRequest,
    InvoiceReceivedRequest,
    PartialDeliveryRequest,
    ReturnStatusRequest,
    UpdateOrderRequest,
)
from app.core.config import get_settings
from app.db.repositories import OrderRepository
from app.domain.value_objects.money import Money
from app.services.finance import InvoiceReceiptService, PartialDeliveryFinancialHandler, ReturnStatusHandler
from app.services.orders.linkers import ReturnLinker
from app.services.orders.orchestrator import OrderOrchestrator
from app.utils.error_handler import OrderNotFoundException, ValidationException

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """
    Crea un pedido y reserva su stock.

    Para pedidos de ارجاع/استبدال sin ``original_order_id`` se busca el último
    pedido entregado del mismo teléfono.
    """
    result = await orchestrator.create_order(request.to_request())
    return {
        "status": "success",
        "data": result,
        "message": f"Order {result['order'].get('order_number') or result['order'].get('id')} created",
    }


@router.patch("/{order_id}", status_code=status.HTTP_200_OK)
async def update_order(
    order_id: str,
    request: UpdateOrderRequest,
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Edita un pedido mientras el estado del socio lo permita."""
    changes = request.to_changes()
    if not changes:
        raise ValidationException(message="No changes provided", field="body", invalid_value={})

    result = await orchestrator.update_order(order_id, changes)
    return {"status": "success", "data": result, "message": "Order updated"}


@router.delete("/{order_id}", status_code=status.HTTP_200_OK)
async def delete_order(
    order_id: str,
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Elimina un pedido y libera su reserva."""
    result = await orchestrator.delete_order(order_id)
    return {"status": "success", "data": result, "message": "Order deleted"}


@router.post("/{order_id}/partial-delivery", status_code=status.HTTP_200_OK)
async def process_partial_delivery(
    order_id: str,
    request: PartialDeliveryRequest,
    handler: PartialDeliveryFinancialHandler = Depends(get_partial_delivery_handler),
) -> dict[str, Any]:
    """
    Registra una entrega parcial.

    Solo las líneas entregadas generan ingreso, costo y ganancia del empleado.
    """
    final_price = None
    if request.final_price is not None:
        final_price = Money.from_value(request.final_price, settings.CURRENCY_CODE)

    result = await handler.handle(order_id, request.delivered_item_ids, final_price=final_price)
    return {"status": "success", "data": result, "message": "Partial delivery processed"}


@router.post("/{order_id}/return-status", status_code=status.HTTP_200_OK)
async def process_return_status(
    order_id: str,
    request: ReturnStatusRequest,
    handler: ReturnStatusHandler = Depends(get_return_status_handler),
) -> dict[str, Any]:
    """Aplica un estado del socio (21 / 17) a un pedido de devolución."""
    result = await handler.handle(order_id, request.delivery_status)
    return {"status": "success", "data": result, "message": f"Return status: {result.get('action')}"}


@router.post("/{order_id}/link-original", status_code=status.HTTP_200_OK)
async def link_original_order(
    order_id: str,
    linker: ReturnLinker = Depends(get_return_linker),
    order_repository: OrderRepository = Depends(get_order_repository),
) -> dict[str, Any]:
    """Vincula un pedido de devolución con el último pedido entregado del cliente."""
    order = await order_repository.get_order(order_id)
    if order is None:
        raise OrderNotFoundException(order_id)

    result = await linker.link_return_to_original(order)
    return {
        "status": "success" if result.get("linked") else "not_found",
        "data": result,
        "message": result.get("error") or "Order linked",
    }


@router.post("/invoice-received", status_code=status.HTTP_200_OK)
async def mark_invoice_received(
    request: InvoiceReceivedRequest,
    service: InvoiceReceiptService = Depends(get_invoice_receipt_service),
) -> dict[str, Any]:
    """
    Registra la recepción de la factura del socio.

    Los pedidos entregados pasan a completados; los demás se reportan con su motivo.
    """
    result = await service.mark_invoice_received(request.order_ids, invoice_id=request.invoice_id)
    summary = result["summary"]
    return {
        "status": "success" if not summary["failed"] else "partial",
        "data": result,
        "message": f"{summary['successful']} of {summary['total']} orders received",
    }
