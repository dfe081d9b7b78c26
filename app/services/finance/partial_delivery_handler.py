"""
PartialDeliveryFinancialHandler: profits of an order where the customer kept
only part of the items.

Revenue and cost come from the delivered items only. The courier earns the
whole delivery fee as soon as anything is delivered. Delivered lines leave the
stock for good; the rest wait for the courier to bring them back.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from app.db.repositories import InventoryRepository, LedgerRepository, OrderRepository
from app.domain.models import ItemStatus, OrderItemDomain, OrderStatus, ProfitRecord, ProfitStatus
from app.domain.value_objects.money import Money
from app.services.finance.profit_calculator import EmployeeProfitCalculator
from app.utils.error_handler import OrderNotFoundException, ProcessingException

logger = logging.getLogger(__name__)


def _history_item(item: OrderItemDomain) -> Dict[str, Any]:
    return {
        "id": item.id,
        "product_id": item.product_id,
        "variant_id": item.variant_id,
        "quantity": item.quantity,
        "unit_price": item.unit_price.amount,
    }


class PartialDeliveryFinancialHandler:
    def __init__(
        self,
        order_repository: OrderRepository,
        ledger_repository: LedgerRepository,
        inventory_repository: InventoryRepository,
        profit_calculator: Optional[EmployeeProfitCalculator] = None,
    ):
        self.order_repository = order_repository
        self.ledger_repository = ledger_repository
        self.inventory_repository = inventory_repository
        self.profit_calculator = profit_calculator or EmployeeProfitCalculator(ledger_repository)

    async def handle(
        self,
        order_id: str,
        delivered_item_ids: Iterable[str],
        final_price: Optional[Money] = None,
    ) -> Dict[str, Any]:
        """
        Book a partial delivery: profits, stock and item and order statuses.

        Args:
            order_id: Order id
            delivered_item_ids: Ids of the order items the customer kept
            final_price: Amount actually collected, if it differs from the order

        Returns:
            dict: Profit id, delivered revenue, cost and profits, and the new order status

        Raises:
            OrderNotFoundException: Unknown order
            ProcessingException: None of the ids belongs to the order
        """
        order = await self.order_repository.get_order(order_id)
        if order is None:
            raise OrderNotFoundException(order_id)

        delivered_ids = {str(item_id) for item_id in delivered_item_ids}
        delivered = [item for item in order.items if str(item.id) in delivered_ids]
        undelivered = [item for item in order.items if str(item.id) not in delivered_ids]
        if not delivered:
            raise ProcessingException(
                message="لا توجد منتجات مسلمة",
                service="finance",
                operation="partial_delivery",
                retry_suggested=False,
            )

        currency = order.currency
        revenue = Money.zero(currency)
        cost = Money.zero(currency)
        for item in delivered:
            revenue = revenue + item.total_price
            cost = cost + item.total_cost

        employee_profit = await self.profit_calculator.calculate(order.created_by, delivered)
        system_profit = revenue - cost - employee_profit
        delivery_fee = order.delivery_fee
        collected = final_price if final_price is not None else order.final_amount

        record = ProfitRecord(
            order_id=order.id,
            employee_id=order.created_by,
            total_revenue=revenue + delivery_fee,
            total_cost=cost,
            employee_profit=employee_profit,
            profit_amount=system_profit,
            status=ProfitStatus.PENDING,
        )
        profit_id = await self.ledger_repository.upsert_profit(record)

        await self.ledger_repository.insert_partial_delivery_history(
            {
                "order_id": order.id,
                "delivered_items": [_history_item(item) for item in delivered],
                "undelivered_items": [_history_item(item) for item in undelivered],
                "delivered_revenue": (revenue + delivery_fee).amount,
                "delivered_cost": cost.amount,
                "employee_profit": employee_profit.amount,
                "system_profit": system_profit.amount,
                "delivery_fee_allocated": delivery_fee.amount,
                "processed_by": order.created_by,
            }
        )

        sold = 0
        for item in delivered:
            if item.is_delivered:
                continue
            await self.inventory_repository.finalize_sale(item.variant_id, item.quantity)
            sold += 1

        await self.order_repository.set_items_status(order.id, [item.id for item in delivered], ItemStatus.DELIVERED)
        await self.order_repository.set_items_status(
            order.id, [item.id for item in undelivered], ItemStatus.PENDING_RETURN
        )
        new_status = OrderStatus.PARTIAL_DELIVERY if undelivered else OrderStatus.DELIVERED
        await self.order_repository.update_order(order.id, {"status": new_status, "price_change_type": None})

        logger.info(
            f"📦 Partial delivery {order.display_reference}: {len(delivered)}/{len(order.items)} items, "
            f"revenue {(revenue + delivery_fee).format()}, employee {employee_profit.format()}"
        )
        return {
            "profit_id": profit_id,
            "delivered_count": len(delivered),
            "undelivered_count": len(undelivered),
            "total_revenue": (revenue + delivery_fee).amount,
            "total_cost": cost.amount,
            "employee_profit": employee_profit.amount,
            "system_profit": system_profit.amount,
            "collected_amount": collected.amount,
            "stock_finalized": sold,
            "order_status": new_status,
        }
