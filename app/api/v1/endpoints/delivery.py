"""
Endpoints de integración con los socios de entrega (Al-Waseet, MODON):
tablas de estados, sincronización de estados y facturas, auditoría de reservas.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, status

from app.api.v1.dependencies import (
    get_delivery_client_factory,
    get_invoice_receipt_service,
    get_reservation_auditor,
    get_status_synchronizer,
)
from app.api.v1.schemas.order_schemas import DeliverySyncRequest
from app.domain.models import DeliveryPartner
from app.services.delivery.reservation_policy import ReservationAuditor
from app.services.delivery.status_synchronizer import OrderStatusSynchronizer
from app.services.delivery.statuses import status_registry
from app.services.finance import InvoiceReceiptService
from app.utils.error_handler import ValidationException

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_partner(partner: str) -> str:
    if partner not in DeliveryPartner.ALL:
        raise ValidationException(
            message=f"Unknown delivery partner: {partner}",
            field="partner",
            invalid_value=partner,
            expected_format=" | ".join(DeliveryPartner.ALL),
        )
    return partner


@router.get("/statuses/{partner}", status_code=status.HTTP_200_OK)
async def list_partner_statuses(partner: str) -> dict[str, Any]:
    """Tabla de estados de un socio con sus reglas (editar, eliminar, liberar stock)."""
    _check_partner(partner)
    statuses = status_registry.list_statuses(partner)
    return {"status": "success", "data": {"partner": partner, "statuses": [s.to_dict() for s in statuses]}}


@router.get("/statuses/{partner}/{state_id}", status_code=status.HTTP_200_OK)
async def get_partner_status(partner: str, state_id: str) -> dict[str, Any]:
    _check_partner(partner)
    config = status_registry.get_status_config(partner, state_id)
    return {"status": "success", "data": config.to_dict()}


@router.post("/sync", status_code=status.HTTP_200_OK)
async def sync_order_statuses(
    request: DeliverySyncRequest,
    synchronizer: OrderStatusSynchronizer = Depends(get_status_synchronizer),
) -> dict[str, Any]:
    """
    Sincroniza los pedidos activos con los estados del socio.

    Cada pedido se procesa bajo su lock; los pedidos bloqueados se omiten y
    se reportan en ``skipped_locked``.
    """
    logger.info(f"🔄 Manual status sync requested for {request.partner}")
    stats = await synchronizer.sync(request.partner, token=request.token)
    return {
        "status": "success" if not stats.get("errors") else "partial",
        "data": stats,
        "message": f"{stats.get('updated', 0)} orders updated",
    }


@router.post("/reservations/audit", status_code=status.HTTP_200_OK)
async def audit_reservations(
    auditor: ReservationAuditor = Depends(get_reservation_auditor),
) -> dict[str, Any]:
    """Libera las reservas de pedidos que ya no deberían retener stock."""
    result = await auditor.audit_and_fix()
    return {
        "status": "success" if not result.get("errors") else "partial",
        "data": result,
        "message": f"{result.get('released', 0)} reservations released",
    }


def _check_courier(partner: str) -> str:
    if partner not in (DeliveryPartner.ALWASEET, DeliveryPartner.MODON):
        raise ValidationException(
            message=f"Partner without merchant API: {partner}",
            field="partner",
            invalid_value=partner,
            expected_format="alwaseet | modon",
        )
    return partner


@router.get("/partners/{partner}/package-sizes", status_code=status.HTTP_200_OK)
async def list_package_sizes(partner: str, client_factory=Depends(get_delivery_client_factory)) -> dict[str, Any]:
    """Tamaños de paquete aceptados por el socio."""
    _check_courier(partner)
    async with client_factory(partner, None) as client:
        sizes = await client.get_package_sizes()
    return {"status": "success", "data": {"partner": partner, "package_sizes": sizes}}


@router.get("/partners/{partner}/remote-statuses", status_code=status.HTTP_200_OK)
async def list_remote_statuses(partner: str, client_factory=Depends(get_delivery_client_factory)) -> dict[str, Any]:
    """
    Estados publicados por el socio, marcando los que no están en la tabla local.
    """
    _check_courier(partner)
    async with client_factory(partner, None) as client:
        remote = await client.get_statuses()

    unknown = [
        item
        for item in remote
        if not status_registry.get_status_config(partner, str(item.get("id", ""))).is_known
    ]
    if unknown:
        logger.warning(f"⚠️ {partner} publishes {len(unknown)} states missing from the local table")
    return {"status": "success", "data": {"partner": partner, "statuses": remote, "unknown": unknown}}


@router.post("/invoices/sync", status_code=status.HTTP_200_OK)
async def sync_received_invoices(
    request: DeliverySyncRequest,
    service: InvoiceReceiptService = Depends(get_invoice_receipt_service),
) -> dict[str, Any]:
    """Registra la recepción de las facturas que el socio ya marca como recibidas."""
    stats = await service.sync_received_invoices(request.partner, token=request.token)
    return {
        "status": "success" if not stats.get("errors") else "partial",
        "data": stats,
        "message": f"{stats['orders_updated']} orders received",
    }
