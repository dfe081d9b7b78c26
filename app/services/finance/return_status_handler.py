"""
ReturnStatusHandler: courier state changes on return orders.

State 21 means the courier is bringing the product back; state 17 means it
reached the merchant. A return that reaches 17 without passing through 21
was never collected from the customer and is cancelled.
"""

import logging
from typing import Any, Dict, Optional

from app.db.repositories import InventoryRepository, LedgerRepository, OrderRepository
from app.domain.models import ExpenseType, LedgerEntry, MovementType, OrderDomain, OrderStatus, TransactionType
from app.domain.value_objects.money import Money
from app.services.finance.cash_ledger import CashLedger
from app.services.finance.profit_adjustment import ProfitAdjuster
from app.utils.error_handler import AppException, OrderNotFoundException, ProcessingException

logger = logging.getLogger(__name__)

STATE_RETURN_IN_TRANSIT = "21"
STATE_RETURNED_TO_MERCHANT = "17"

CANCELLED_NOTE = "[تلقائي] تم إلغاء الطلب - لم يتم استلام المنتج من الزبون"


class ReturnStatusHandler:
    def __init__(
        self,
        order_repository: OrderRepository,
        inventory_repository: InventoryRepository,
        ledger_repository: LedgerRepository,
        cash_ledger: CashLedger,
        profit_adjuster: Optional[ProfitAdjuster] = None,
    ):
        self.order_repository = order_repository
        self.inventory_repository = inventory_repository
        self.ledger_repository = ledger_repository
        self.cash_ledger = cash_ledger
        self.profit_adjuster = profit_adjuster or ProfitAdjuster(ledger_repository)

    async def handle(self, order_id: str, delivery_status: Any) -> Dict[str, Any]:
        """
        Apply a courier state to a return order.

        Returns:
            dict: ``action`` is one of skipped, return_pending, cancelled, completed

        Raises:
            OrderNotFoundException: Unknown order
            ProcessingException: No items could be put back in stock
        """
        order = await self.order_repository.get_order(order_id)
        if order is None:
            raise OrderNotFoundException(order_id)

        if not order.is_return:
            return {"action": "skipped", "reason": "not_a_return"}

        state = str(delivery_status).strip()
        if state == STATE_RETURN_IN_TRANSIT:
            await self.order_repository.update_order(order.id, {"status": OrderStatus.RETURN_PENDING})
            logger.info(f"↩️ Return {order.display_reference} is on its way back")
            return {"action": OrderStatus.RETURN_PENDING}

        if state == STATE_RETURNED_TO_MERCHANT:
            if order.status != OrderStatus.RETURN_PENDING:
                order.append_merchant_note(CANCELLED_NOTE)
                await self.order_repository.update_order(
                    order.id, {"status": OrderStatus.CANCELLED, "merchant_notes": order.merchant_notes}
                )
                logger.info(f"🚫 Return {order.display_reference} cancelled: product never collected")
                return {"action": OrderStatus.CANCELLED}
            return await self._complete_return(order)

        return {"action": "skipped", "reason": f"state {state}"}

    async def _restock_items(self, order: OrderDomain) -> int:
        if not order.items:
            raise ProcessingException(
                message="لا توجد منتجات للإرجاع", service="finance", operation="return_restock", retry_suggested=False
            )

        reason = f"إرجاع للمخزون - {order.tracking_number or order.id}"
        restocked = 0
        failed = []
        for item in order.items:
            try:
                await self.inventory_repository.restock(item.variant_id, item.quantity, reason)
                restocked += 1
            except AppException as e:
                failed.append({"variant_id": item.variant_id, "error": e.message})
                logger.error(f"❌ Could not restock {item.variant_id} for return {order.display_reference}: {e}")

        if restocked == 0:
            raise ProcessingException(
                message="فشل إرجاع المنتجات للمخزون",
                service="finance",
                operation="return_restock",
                failed_records=failed,
            )
        return restocked

    async def _complete_return(self, order: OrderDomain) -> Dict[str, Any]:
        restocked = await self._restock_items(order)
        result: Dict[str, Any] = {"action": OrderStatus.COMPLETED, "restocked": restocked, "cash_movement": None}

        refund = abs(order.total_amount)
        if order.total_amount.is_positive:
            source = await self.cash_ledger.get_main_source()
            if source is not None:
                movement = await self.cash_ledger.record_movement(
                    source,
                    MovementType.OUT,
                    refund,
                    description=f"دفع إرجاع للزبون - طلب #{order.order_number or 'غير معروف'}",
                    reference_type="return_order",
                    reference_id=order.id,
                    created_by=order.created_by,
                )
                result["cash_movement"] = movement.to_dict()

        loss = Money.zero(order.currency)
        if order.original_order_id:
            loss = await self._book_return_loss(order)
            adjustment = await self.profit_adjuster.adjust_for_refund(order.original_order_id, abs(order.final_amount))
            result["profit_adjustment"] = adjustment.to_dict()
        result["loss"] = loss.amount

        note = f"[تلقائي] تم إرجاع {restocked} منتج للمخزون ومعالجة الأرباح"
        if loss.is_positive:
            note += f". خسارة: {int(loss)} دينار"
        order.append_merchant_note(note)
        await self.order_repository.update_order(
            order.id, {"status": OrderStatus.COMPLETED, "merchant_notes": order.merchant_notes}
        )

        logger.info(f"✅ Return {order.display_reference} completed: {restocked} items back in stock")
        return result

    async def _book_return_loss(self, order: OrderDomain) -> Money:
        """Book the part of the refund above the original order amount."""
        original = await self.order_repository.get_order(order.original_order_id)
        refund = abs(order.final_amount)
        if original is None:
            logger.warning(f"⚠️ Original order {order.original_order_id} of return {order.display_reference} not found")
            return Money.zero(order.currency)

        original_amount = original.final_amount if not original.final_amount.is_zero else original.total_amount
        if refund <= original_amount:
            return Money.zero(order.currency)

        loss = refund - original_amount
        await self.ledger_repository.insert_entry(
            LedgerEntry(
                transaction_type=TransactionType.EXPENSE,
                category=ExpenseType.RETURN_LOSS,
                amount=loss,
                description=(
                    f"خسارة إرجاع - الفرق بين مبلغ الإرجاع ({int(refund)}) والطلب الأصلي ({int(original_amount)})"
                ),
                expense_type=ExpenseType.RETURN_LOSS,
                reference_type="return_order",
                reference_id=order.id,
                created_by=order.created_by,
            )
        )
        logger.warning(f"⚠️ Return {order.display_reference} refund exceeds the original order by {loss.format()}")
        return loss
