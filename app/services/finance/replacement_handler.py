"""
ReplacementFinancialHandler: bookkeeping of a delivered replacement order.

- price difference < 0: the customer gets money back (expense) and the
  original order's profit shrinks
- price difference > 0: the shop earns the difference (revenue)
- delivery fee > 0: the shop pays the courier, deducted from the employee
- delivery fee < 0: the courier deducts it from the next invoice
"""

import logging
from typing import Any, Dict, Optional

from app.db.repositories import LedgerRepository, OrderRepository
from app.domain.models import ExpenseType, LedgerEntry, OrderDomain, TransactionType
from app.domain.value_objects.money import Money
from app.services.finance.profit_adjustment import ProfitAdjuster

logger = logging.getLogger(__name__)

REFUND_CATEGORY = "خصم استبدال"
PROFIT_CATEGORY = "أرباح استبدال"
DELIVERY_FEE_CATEGORY = "رسوم توصيل استبدال"
INVOICE_DEDUCTION_CATEGORY = "رسوم توصيل مخصومة من الفاتورة"


class ReplacementFinancialHandler:
    def __init__(
        self,
        ledger_repository: LedgerRepository,
        order_repository: OrderRepository,
        profit_adjuster: Optional[ProfitAdjuster] = None,
    ):
        self.ledger_repository = ledger_repository
        self.order_repository = order_repository
        self.profit_adjuster = profit_adjuster or ProfitAdjuster(ledger_repository)

    async def _book(
        self,
        transaction_type: str,
        category: str,
        amount: Money,
        description: str,
        expense_type: str,
        order_id: str,
        **kwargs,
    ) -> Dict[str, Any]:
        entry = LedgerEntry(
            transaction_type=transaction_type,
            category=category,
            amount=amount,
            description=description,
            expense_type=expense_type,
            reference_id=order_id,
            **kwargs,
        )
        entry_id = await self.ledger_repository.insert_entry(entry)
        return {"id": entry_id, **entry.to_dict()}

    async def handle(
        self,
        order: OrderDomain,
        price_difference: Optional[Money] = None,
        delivery_fee: Optional[Money] = None,
    ) -> Dict[str, Any]:
        """
        Book the financial effects of a replacement order.

        Args:
            order: The replacement order
            price_difference: New product minus returned product; defaults to
                the order's ``total_amount``
            delivery_fee: Defaults to the order's delivery fee

        Returns:
            dict: Entries written and the adjustments made
        """
        price_difference = order.total_amount if price_difference is None else price_difference
        delivery_fee = order.delivery_fee if delivery_fee is None else delivery_fee
        order_id = order.id
        result: Dict[str, Any] = {
            "order_id": order_id,
            "price_difference": price_difference.amount,
            "delivery_fee": delivery_fee.amount,
            "entries": [],
            "profit_adjustment": None,
            "employee_profit_deducted": None,
            "notes_updated": False,
        }
        logger.info(
            f"🔁 Replacement {order.display_reference}: difference {price_difference.format()}, "
            f"delivery {delivery_fee.format()}"
        )

        if price_difference.is_negative:
            refund = abs(price_difference)
            result["entries"].append(
                await self._book(
                    TransactionType.EXPENSE,
                    REFUND_CATEGORY,
                    refund,
                    f"فرق سعر استبدال لصالح الزبون - طلب {order_id}",
                    ExpenseType.REPLACEMENT_REFUND,
                    order_id,
                )
            )
            if order.original_order_id:
                adjustment = await self.profit_adjuster.adjust_for_refund(order.original_order_id, refund)
                result["profit_adjustment"] = adjustment.to_dict()
        elif price_difference.is_positive:
            result["entries"].append(
                await self._book(
                    TransactionType.REVENUE,
                    PROFIT_CATEGORY,
                    price_difference,
                    f"فرق سعر استبدال لصالح النظام - طلب {order_id}",
                    ExpenseType.REPLACEMENT_PROFIT,
                    order_id,
                )
            )

        if delivery_fee.is_positive:
            result["entries"].append(
                await self._book(
                    TransactionType.EXPENSE,
                    DELIVERY_FEE_CATEGORY,
                    delivery_fee,
                    f"رسوم توصيل استبدال - طلب {order_id}",
                    ExpenseType.DELIVERY_FEE,
                    order_id,
                    created_by=order.created_by,
                )
            )
            result["employee_profit_deducted"] = await self._deduct_from_employee(order.created_by, delivery_fee)
        elif delivery_fee.is_negative:
            fee = abs(delivery_fee)
            result["entries"].append(
                await self._book(
                    TransactionType.EXPENSE,
                    INVOICE_DEDUCTION_CATEGORY,
                    fee,
                    f"رسوم توصيل استبدال سالبة - طلب {order_id}",
                    ExpenseType.INVOICE_DEDUCTION,
                    order_id,
                    reference_type="alwaseet_invoice",
                )
            )
            await self.order_repository.update_order(order_id, {"notes": f"خصم من فاتورة الوسيط: {fee.format()}"})
            result["notes_updated"] = True

        logger.info(f"✅ Replacement {order.display_reference}: {len(result['entries'])} ledger entries")
        return result

    async def _deduct_from_employee(self, employee_id: Optional[str], fee: Money) -> Optional[Dict[str, Any]]:
        if not employee_id:
            return None

        record = await self.ledger_repository.get_latest_employee_profit(employee_id)
        if record is None:
            logger.info(f"ℹ️ Employee {employee_id} has no profit record to deduct the delivery fee from")
            return None

        before = record.employee_profit
        record.employee_profit = (before - fee).max_zero()
        await self.ledger_repository.update_profit(record)
        return {"profit_id": record.id, "before": before.amount, "after": record.employee_profit.amount}
