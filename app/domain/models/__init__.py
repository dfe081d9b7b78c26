"""
Domain models for business entities.

These models represent core business concepts and contain
business logic and invariants.
"""

from .customer import CustomerLoyalty, LoyaltyDiscount, LoyaltyTier
from .finance import (
    CashMovement,
    CashSource,
    ExpenseType,
    LedgerEntry,
    MovementType,
    ProfitRecord,
    ProfitStatus,
    TransactionType,
)
from .order import DeliveryPartner, OrderDomain, OrderStatus, OrderType, PriceChangeType
from .order_item import ItemDirection, ItemStatus, OrderItemDomain

__all__ = [
    "OrderDomain",
    "OrderItemDomain",
    "OrderType",
    "OrderStatus",
    "DeliveryPartner",
    "PriceChangeType",
    "ItemDirection",
    "ItemStatus",
    "LoyaltyTier",
    "CustomerLoyalty",
    "LoyaltyDiscount",
    "CashSource",
    "CashMovement",
    "MovementType",
    "LedgerEntry",
    "TransactionType",
    "ExpenseType",
    "ProfitRecord",
    "ProfitStatus",
]
