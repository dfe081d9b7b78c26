"""
Stock reservation policy.

An order reserves its items while it is open. The reservation is released
when the goods are sold (delivered) or physically back on the shelf.
"""

import logging
import re
from typing import Any, Dict, List

from app.db.repositories import InventoryRepository, OrderRepository
from app.domain.models import DeliveryPartner, OrderDomain, OrderStatus
from app.services.delivery.statuses import get_modon_status
from app.utils.error_handler import AppException

logger = logging.getLogger(__name__)

ALWASEET_RELEASE_STATES = frozenset({"4", "17"})

# Free-text states of other couriers that mean "delivered" or "back in stock"
_RELEASE_PATTERNS = (
    re.compile(r"تسليم|مسلم|deliver", re.IGNORECASE),
    re.compile(r"راجع.*المخزن|return.*stock", re.IGNORECASE),
    re.compile(r"تم.*الارجاع.*التاجر", re.IGNORECASE),
)


def _local_release(status: str | None) -> bool:
    return status in OrderStatus.STOCK_RELEASED


def should_release_stock(status: str | None, delivery_status: Any, partner: str | None) -> bool:
    """
    Whether an order no longer holds its stock reservation.

    - local orders: status completed, delivered or returned_in_stock
    - Al-Waseet: courier state 4 (delivered) or 17 (returned to merchant)
    - MODON: the state table's ``releases_stock``
    - other couriers: the free-text state matches a delivered/returned pattern
    """
    if not partner or partner == DeliveryPartner.LOCAL:
        return _local_release(status)

    partner = partner.lower()
    if partner == DeliveryPartner.ALWASEET:
        return str(delivery_status).strip() in ALWASEET_RELEASE_STATES

    if partner == DeliveryPartner.MODON:
        if delivery_status is None:
            return _local_release(status)
        return get_modon_status(delivery_status, current_status=status).releases_stock

    if delivery_status:
        text = str(delivery_status)
        return any(pattern.search(text) for pattern in _RELEASE_PATTERNS)

    return _local_release(status)


def should_keep_reservation(status: str | None, delivery_status: Any, partner: str | None) -> bool:
    if should_release_stock(status, delivery_status, partner):
        return False
    return status in OrderStatus.RESERVING


class ReservationAuditor:
    """Find open orders whose courier state already released the stock and fix them."""

    def __init__(self, order_repository: OrderRepository, inventory_repository: InventoryRepository):
        self.order_repository = order_repository
        self.inventory_repository = inventory_repository

    async def release_order_items(self, order: OrderDomain) -> int:
        # Return orders bring goods back, they never reserve
        if order.is_return:
            return 0

        released = 0
        for item in order.reserved_items:
            await self.inventory_repository.release_reservation(item.variant_id, item.quantity)
            released += 1
        return released

    async def audit_and_fix(self, orders: List[OrderDomain] | None = None) -> Dict[str, Any]:
        """
        Audit reservations.

        Args:
            orders: Orders to audit; defaults to every order in a reserving status

        Returns:
            dict: processed, released, reserved and errors counts
        """
        if orders is None:
            orders = await self.order_repository.get_reserving_orders()

        report = {"total": len(orders), "processed": 0, "released": 0, "reserved": 0, "errors": 0}
        logger.info(f"🔍 Auditing stock reservations of {len(orders)} orders")

        for order in orders:
            try:
                if should_release_stock(order.status, order.delivery_status, order.delivery_partner):
                    await self.release_order_items(order)
                    report["released"] += 1
                    logger.info(f"🔓 Released reservation of order {order.display_reference}")
                elif should_keep_reservation(order.status, order.delivery_status, order.delivery_partner):
                    report["reserved"] += 1
                report["processed"] += 1
            except AppException as e:
                report["errors"] += 1
                logger.error(f"❌ Reservation audit failed for order {order.display_reference}: {e.message}")

        logger.info(
            f"✅ Reservation audit: {report['processed']} processed, {report['released']} released, "
            f"{report['reserved']} reserved, {report['errors']} errors"
        )
        return report
