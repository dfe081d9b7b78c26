"""
Links returns and replacements to the customer's original order.
"""

import logging
import uuid
from typing import Any, Dict, Optional

from app.db.repositories import OrderRepository
from app.domain.models import OrderDomain
from app.utils.phone_utils import normalize_phone

logger = logging.getLogger(__name__)


class ReturnLinker:
    def __init__(self, order_repository: OrderRepository):
        self.order_repository = order_repository

    async def link_return_to_original(self, order: OrderDomain, persist: bool = True) -> Dict[str, Any]:
        """
        Link ``order`` to the latest delivered or completed order of the same phone.

        Args:
            order: Return (or replacement) order
            persist: Also write ``original_order_id`` when the order is stored

        Returns:
            dict: ``linked`` plus the original order id and number, or an error
        """
        phone = normalize_phone(order.customer_phone)
        if not phone:
            return {"linked": False, "error": "رقم هاتف غير صحيح"}

        original = await self.order_repository.find_latest_delivered_by_phone(phone, exclude_order_id=order.id)
        if original is None:
            logger.info(f"ℹ️ No delivered order found for {phone} to link")
            return {"linked": False, "error": "لم يتم العثور على طلب أصلي مُسلّم"}

        order.original_order_id = str(original["id"])
        if persist and order.id:
            await self.order_repository.update_order(order.id, {"original_order_id": order.original_order_id})

        logger.info(f"🔗 Order {order.display_reference or 'new'} linked to original {order.original_order_id}")
        return {
            "linked": True,
            "original_order_id": order.original_order_id,
            "original_order_number": original.get("order_number"),
        }

    async def link_replacement_pair(self, first: OrderDomain, second: OrderDomain) -> str:
        """Give both orders the same ``replacement_pair_id``."""
        pair_id = str(uuid.uuid4())
        for order in (first, second):
            order.replacement_pair_id = pair_id
            if order.id:
                await self.order_repository.update_order(order.id, {"replacement_pair_id": pair_id})
        logger.info(f"🔗 Replacement pair {pair_id}: {first.id} ↔ {second.id}")
        return pair_id

    async def get_original_order(self, order: OrderDomain) -> Optional[OrderDomain]:
        if not order.original_order_id:
            return None
        return await self.order_repository.get_order(order.original_order_id)
