"""
Finance domain models: cash sources, cash movements, ledger entries and
per-order profit records.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from app.domain.value_objects.money import Money


class MovementType:
    IN = "in"
    OUT = "out"

    ALL = (IN, OUT)


class TransactionType:
    EXPENSE = "expense"
    REVENUE = "revenue"


class ExpenseType:
    """Ledger categories produced by the order financial flows."""

    REPLACEMENT_REFUND = "replacement_refund"
    REPLACEMENT_PROFIT = "replacement_profit"
    DELIVERY_FEE = "delivery_fee"
    INVOICE_DEDUCTION = "invoice_deduction"
    LOSS = "loss"
    RETURN_LOSS = "return_loss"


class ProfitStatus:
    PENDING = "pending"
    INVOICE_RECEIVED = "invoice_received"
    SETTLED = "settled"


@dataclass
class CashSource:
    """A cash box (the main one is named القاصة الرئيسية)."""

    id: str
    name: str
    current_balance: Money
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any], currency: str = "IQD") -> "CashSource":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            current_balance=Money.from_value(data.get("current_balance"), currency),
            is_active=bool(data.get("is_active", True)),
        )


@dataclass
class CashMovement:
    """
    A single in/out movement on a cash source.

    ``balance_before`` and ``balance_after`` are snapshots taken when the
    movement was recorded; the source balance is updated in the same step.
    """

    cash_source_id: str
    movement_type: str
    amount: Money
    balance_before: Money
    balance_after: Money
    description: str
    reference_type: str
    reference_id: str | None = None
    created_by: str | None = None
    effective_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    id: str | None = None

    def __post_init__(self) -> None:
        if self.movement_type not in MovementType.ALL:
            raise ValueError(f"Invalid movement type: {self.movement_type}")
        if not self.amount.is_positive:
            raise ValueError(f"Movement amount must be positive: {self.amount.amount}")

        sign = 1 if self.movement_type == MovementType.IN else -1
        if self.balance_after.amount != self.balance_before.amount + sign * self.amount.amount:
            raise ValueError("balance_after does not match balance_before and amount")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "cash_source_id": self.cash_source_id,
            "movement_type": self.movement_type,
            "amount": self.amount.amount,
            "balance_before": self.balance_before.amount,
            "balance_after": self.balance_after.amount,
            "description": self.description,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "created_by": self.created_by,
            "effective_at": self.effective_at,
        }


@dataclass
class LedgerEntry:
    """An accounting row (expense or revenue)."""

    transaction_type: str
    category: str
    amount: Money
    description: str
    expense_type: str
    reference_type: str = "order"
    reference_id: str | None = None
    created_by: str | None = None

    def __post_init__(self) -> None:
        if not self.amount.is_positive:
            raise ValueError(f"Ledger amount must be positive: {self.amount.amount}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_type": self.transaction_type,
            "category": self.category,
            "amount": self.amount.amount,
            "description": self.description,
            "expense_type": self.expense_type,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "created_by": self.created_by,
        }


@dataclass
class ProfitRecord:
    """Profit split of one order between the employee and the system."""

    order_id: str
    employee_id: str | None
    total_revenue: Money
    total_cost: Money
    employee_profit: Money
    profit_amount: Money
    status: str = ProfitStatus.PENDING
    id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], currency: str = "IQD") -> "ProfitRecord":
        return cls(
            id=str(data["id"]) if data.get("id") is not None else None,
            order_id=str(data["order_id"]),
            employee_id=str(data["employee_id"]) if data.get("employee_id") is not None else None,
            total_revenue=Money.from_value(data.get("total_revenue"), currency),
            total_cost=Money.from_value(data.get("total_cost"), currency),
            employee_profit=Money.from_value(data.get("employee_profit"), currency),
            profit_amount=Money.from_value(data.get("profit_amount"), currency),
            status=data.get("status") or ProfitStatus.PENDING,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "employee_id": self.employee_id,
            "total_revenue": self.total_revenue.amount,
            "total_cost": self.total_cost.amount,
            "employee_profit": self.employee_profit.amount,
            "profit_amount": self.profit_amount.amount,
            "status": self.status,
        }
