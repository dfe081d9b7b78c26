"""InventoryManager service - SRP compliance."""

import logging
from collections import Counter
from typing import Dict, Iterable

from app.db.repositories import InventoryRepository
from app.domain.models import OrderItemDomain
from app.utils.error_handler import InsufficientStockException

logger = logging.getLogger(__name__)


def quantities_by_variant(items: Iterable[OrderItemDomain]) -> Dict[str, int]:
    totals: Counter = Counter()
    for item in items:
        totals[item.variant_id] += item.quantity
    return dict(totals)


class InventoryManager:
    """Manages stock reservations of orders (SRP: Inventory only)."""

    def __init__(self, inventory_repository: InventoryRepository):
        self.inventory_repository = inventory_repository

    async def validate_availability(self, requested: Dict[str, int]) -> None:
        """
        Check available = stock - reserved for every variant.

        Raises:
            InsufficientStockException: First variant without enough stock
        """
        stock = await self.inventory_repository.get_stock_for_variants(list(requested))
        for variant_id, quantity in requested.items():
            row = stock.get(variant_id)
            available = 0
            if row is not None:
                available = max(0, int(row.get("quantity") or 0) - int(row.get("reserved_quantity") or 0))
            if quantity > available:
                raise InsufficientStockException(
                    message=f"Insufficient stock for variant {variant_id}: requested {quantity}, available {available}",
                    variant_id=variant_id,
                    requested=quantity,
                    available=available,
                )

    async def validate_and_reserve(self, items: Iterable[OrderItemDomain]) -> Dict[str, int]:
        """Check availability and reserve the items of a new order."""
        requested = quantities_by_variant(items)
        await self.validate_availability(requested)

        for variant_id, quantity in requested.items():
            await self.inventory_repository.reserve(variant_id, quantity)
            logger.debug(f"Reserved {quantity} of variant {variant_id}")
        return requested

    async def release(self, items: Iterable[OrderItemDomain]) -> Dict[str, int]:
        released = quantities_by_variant(items)
        for variant_id, quantity in released.items():
            await self.inventory_repository.release_reservation(variant_id, quantity)
            logger.debug(f"Released {quantity} of variant {variant_id}")
        return released

    async def adjust_for_update(
        self, old_items: Iterable[OrderItemDomain], new_items: Iterable[OrderItemDomain]
    ) -> Dict[str, int]:
        """
        Adjust reservations based on order changes.

        - Quantity increased or variant added: reserve the difference (stock checked)
        - Quantity decreased or variant removed: release the difference

        Returns:
            dict: Signed reservation change per variant
        """
        old_by_variant = quantities_by_variant(old_items)
        new_by_variant = quantities_by_variant(new_items)

        differences = {
            variant_id: new_by_variant.get(variant_id, 0) - old_by_variant.get(variant_id, 0)
            for variant_id in set(old_by_variant) | set(new_by_variant)
        }
        differences = {variant_id: diff for variant_id, diff in differences.items() if diff}

        increases = {variant_id: diff for variant_id, diff in differences.items() if diff > 0}
        if increases:
            await self.validate_availability(increases)

        for variant_id, difference in differences.items():
            if difference > 0:
                await self.inventory_repository.reserve(variant_id, difference)
            else:
                await self.inventory_repository.release_reservation(variant_id, abs(difference))

        logger.info(f"Adjusted reservations for {len(differences)} variants")
        return differences
