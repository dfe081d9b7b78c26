"""
Interfaces/Protocols for order services (Dependency Inversion Principle).

These protocols define contracts that services must implement,
allowing for loose coupling and easy testing.
"""

from typing import Any, Iterable, Protocol

from app.domain.models import CustomerLoyalty, OrderDomain, OrderItemDomain


class IOrderValidator(Protocol):
    """Protocol for order validation services."""

    def validate(self, request: dict[str, Any]) -> dict[str, Any]:
        """Validate an order request."""
        ...


class IInventoryManager(Protocol):
    """Protocol for stock reservation services."""

    async def validate_and_reserve(self, items: Iterable[OrderItemDomain]) -> dict[str, int]:
        """Check availability and reserve stock."""
        ...

    async def release(self, items: Iterable[OrderItemDomain]) -> dict[str, int]:
        """Release reserved stock."""
        ...

    async def adjust_for_update(
        self, old_items: Iterable[OrderItemDomain], new_items: Iterable[OrderItemDomain]
    ) -> dict[str, int]:
        """Reserve or release the quantity differences of an edit."""
        ...


class ILoyaltyService(Protocol):
    """Protocol for customer loyalty lookups."""

    async def get_customer_loyalty(self, phone: str, employee_id: str | None = None) -> CustomerLoyalty:
        """Loyalty snapshot of a phone."""
        ...


class IOrderLinker(Protocol):
    """Protocol for return/replacement linking."""

    async def link_return_to_original(self, order: OrderDomain, persist: bool = True) -> dict[str, Any]:
        """Link an order to the customer's latest delivered order."""
        ...

    async def link_replacement_pair(self, first: OrderDomain, second: OrderDomain) -> str:
        """Give two orders the same replacement pair id."""
        ...
