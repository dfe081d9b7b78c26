"""
Courier invoice receipt.

When the merchant receives the courier's invoice the money of its orders is
in hand: each delivered order is flagged ``receipt_received`` and becomes
completed, which is what loyalty and profit settlement count.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from app.core.logging_config import LogContext
from app.db.repositories import OrderRepository
from app.domain.models import DeliveryPartner, OrderStatus
from app.services.delivery.clients import WaseetClient
from app.utils.error_handler import AppException

logger = logging.getLogger(__name__)

# Status text the courier gives an invoice once the merchant confirmed it
RECEIVED_INVOICE_STATUS = "تم الاستلام من قبل التاجر"

RECEIPT_STATUSES = (OrderStatus.DELIVERED, OrderStatus.COMPLETED)


def is_received_invoice(invoice: Dict[str, Any]) -> bool:
    return str(invoice.get("status") or "").strip() == RECEIVED_INVOICE_STATUS or invoice.get("received") is True


class InvoiceReceiptService:
    """Mark orders as paid out by a courier invoice."""

    def __init__(self, order_repository: OrderRepository, client_factory=WaseetClient):
        self.order_repository = order_repository
        self.client_factory = client_factory

    async def mark_invoice_received(self, order_ids: Iterable[Any], invoice_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Flag the receipt of every order in ``order_ids``.

        Orders are processed one by one; one failing order does not stop the rest.

        Returns:
            dict: per-order ``results`` and a ``summary`` with total, successful,
            failed and invoice_id
        """
        order_ids = [str(order_id) for order_id in order_ids]
        results: List[Dict[str, Any]] = []
        successful = failed = 0

        with LogContext(invoice_id=invoice_id):
            for order_id in order_ids:
                try:
                    result = await self._mark_order(order_id)
                except AppException as e:
                    logger.error(f"❌ Invoice receipt failed for order {order_id}: {e.message}")
                    result = {
                        "order_id": order_id,
                        "success": False,
                        "updated": False,
                        "error": e.message,
                        "retryable": e.is_retryable,
                    }
                    failed += 1
                else:
                    if result["updated"]:
                        successful += 1
                results.append(result)

        logger.info(f"🧾 Invoice {invoice_id or '-'}: {successful} orders received, {failed} failed")
        return {
            "results": results,
            "summary": {
                "total": len(order_ids),
                "successful": successful,
                "failed": failed,
                "invoice_id": invoice_id,
            },
        }

    async def _mark_order(self, order_id: str) -> Dict[str, Any]:
        current = await self.order_repository.get_receipt_state(order_id)
        if current is None:
            return {"order_id": order_id, "success": True, "updated": False, "reason": "Order not found"}

        result = {"order_id": order_id, "order_number": current.get("order_number"), "success": True}
        if current.get("receipt_received") is True:
            return {**result, "updated": False, "reason": "Already received"}
        if current.get("status") not in RECEIPT_STATUSES:
            return {**result, "updated": False, "reason": f"Not delivered yet (status: {current.get('status')})"}

        row = await self.order_repository.mark_receipt_received(order_id)
        if row is None:
            return {**result, "updated": False, "reason": "No update needed or concurrent modification"}

        logger.info(f"✅ Receipt recorded for order {row.get('order_number') or order_id} ({row.get('status')})")
        return {**result, "updated": True, "status": row.get("status")}

    async def sync_received_invoices(
        self, partner: str = DeliveryPartner.ALWASEET, token: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Pull the courier's invoices and record the receipt of those already received.

        Returns:
            dict: invoices_checked, invoices_received, orders_matched, orders_updated and errors
        """
        stats = {"invoices_checked": 0, "invoices_received": 0, "orders_matched": 0, "orders_updated": 0, "errors": 0}

        async with self.client_factory(partner, token) as client:
            invoices = await client.get_merchant_invoices()
            stats["invoices_checked"] = len(invoices)

            for invoice in invoices:
                if not is_received_invoice(invoice):
                    continue
                stats["invoices_received"] += 1
                invoice_id = str(invoice.get("id", ""))

                try:
                    details = await client.get_invoice_orders(invoice_id)
                    partner_ids = [
                        str(order.get("id") or order.get("qr_id") or "").strip() for order in details["orders"]
                    ]
                    local_ids = await self.order_repository.find_ids_by_partner_order_ids(
                        partner, [value for value in partner_ids if value]
                    )
                except AppException as e:
                    logger.warning(f"⚠️ Invoice {invoice_id} of {partner} skipped: {e.message}")
                    stats["errors"] += 1
                    continue

                matched = list(dict.fromkeys(local_ids.values()))
                stats["orders_matched"] += len(matched)
                if not matched:
                    continue

                outcome = await self.mark_invoice_received(matched, invoice_id=invoice_id)
                stats["orders_updated"] += outcome["summary"]["successful"]
                stats["errors"] += outcome["summary"]["failed"]

        logger.info(
            f"🧾 {partner} invoices: {stats['invoices_received']}/{stats['invoices_checked']} received, "
            f"{stats['orders_updated']} orders completed"
        )
        return stats
