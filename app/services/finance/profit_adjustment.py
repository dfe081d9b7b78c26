"""
Reduce an order's profit after money is paid back to the customer.

The employee share shrinks in proportion to its share of the revenue. If the
refund is larger than the revenue, the excess is booked as a loss and the
profit row is zeroed.
"""

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Dict, Optional

from app.db.repositories import LedgerRepository
from app.domain.models import ExpenseType, LedgerEntry, ProfitRecord, TransactionType
from app.domain.value_objects.money import Money

logger = logging.getLogger(__name__)

LOSS_CATEGORY = "خسائر إرجاع"


@dataclass
class ProfitAdjustment:
    order_id: str
    refund: Money
    previous: Optional[ProfitRecord] = None
    updated: Optional[ProfitRecord] = None
    loss: Optional[Money] = None

    @property
    def applied(self) -> bool:
        return self.updated is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "refund": self.refund.amount,
            "applied": self.applied,
            "previous": self.previous.to_dict() if self.previous else None,
            "updated": self.updated.to_dict() if self.updated else None,
            "loss": self.loss.amount if self.loss else None,
        }


class ProfitAdjuster:
    def __init__(self, ledger_repository: LedgerRepository):
        self.ledger_repository = ledger_repository

    async def adjust_for_refund(self, order_id: str, refund: Money) -> ProfitAdjustment:
        """
        Apply a refund to the profit row of ``order_id``.

        Args:
            order_id: Order whose profit is reduced (the original order)
            refund: Money paid back, positive

        Returns:
            ProfitAdjustment: Before/after figures; ``applied`` is False when the
            order has no profit row yet
        """
        adjustment = ProfitAdjustment(order_id=order_id, refund=abs(refund))
        record = await self.ledger_repository.get_profit_by_order(order_id)
        if record is None:
            logger.info(f"ℹ️ Order {order_id} has no profit record, nothing to adjust")
            return adjustment

        adjustment.previous = replace(record)
        refund = adjustment.refund

        revenue = record.total_revenue
        if revenue.is_positive:
            employee_share = record.employee_profit.amount / revenue.amount
        else:
            employee_share = Decimal("0")

        new_revenue = revenue - refund
        new_profit = record.profit_amount - refund
        new_employee = record.employee_profit - refund * employee_share

        if new_revenue.is_negative:
            adjustment.loss = abs(new_revenue)
            await self.ledger_repository.insert_entry(
                LedgerEntry(
                    transaction_type=TransactionType.EXPENSE,
                    category=LOSS_CATEGORY,
                    amount=adjustment.loss,
                    description=f"خسارة من إرجاع/استبدال - طلب {order_id}",
                    expense_type=ExpenseType.LOSS,
                    reference_id=order_id,
                )
            )
            zero = Money.zero(revenue.currency)
            new_revenue = new_profit = new_employee = zero

        record.total_revenue = new_revenue.max_zero()
        record.profit_amount = new_profit.max_zero()
        record.employee_profit = new_employee.max_zero()
        await self.ledger_repository.update_profit(record)
        adjustment.updated = record

        logger.info(
            f"📉 Profit of order {order_id} reduced by {refund.format()}: "
            f"revenue {adjustment.previous.total_revenue.format()} → {record.total_revenue.format()}"
        )
        return adjustment
