"""CartManager service - order lines before the order is stored."""

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from app.core.config import get_settings
from app.db.repositories import InventoryRepository
from app.domain.models import OrderItemDomain
from app.domain.value_objects.money import Money
from app.utils.error_handler import InsufficientStockException

settings = get_settings()
logger = logging.getLogger(__name__)


class CartManager:
    """
    In-memory cart keyed by ``{product_id}-{variant_id}``.

    Adding a line that is already in the cart merges the quantities. Stock is
    checked against available = stock - reserved, except in edit mode where the
    order's own reservation is already counted in ``reserved``.
    """

    def __init__(self, inventory_repository: InventoryRepository, edit_mode: bool = False):
        self.inventory_repository = inventory_repository
        self.edit_mode = edit_mode
        self._items: Dict[str, OrderItemDomain] = {}

    @property
    def items(self) -> List[OrderItemDomain]:
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    @property
    def subtotal(self) -> Money:
        total = Money.zero(settings.CURRENCY_CODE)
        for item in self._items.values():
            total = total + item.total_price
        return total

    async def available_quantity(self, variant_id: str) -> int:
        stock = await self.inventory_repository.get_stock(variant_id)
        if stock is None:
            return 0
        return max(0, int(stock.get("quantity") or 0) - int(stock.get("reserved_quantity") or 0))

    async def _check_stock(self, variant_id: str, requested: int) -> None:
        if self.edit_mode:
            return
        available = await self.available_quantity(variant_id)
        if requested > available:
            raise InsufficientStockException(
                message=f"Insufficient stock for variant {variant_id}: requested {requested}, available {available}",
                variant_id=variant_id,
                requested=requested,
                available=available,
            )

    async def add_item(self, item: OrderItemDomain) -> OrderItemDomain:
        """
        Add a line, merging with an existing line of the same variant.

        Raises:
            InsufficientStockException: Not enough available stock
        """
        existing = self._items.get(item.cart_key)
        quantity = item.quantity + (existing.quantity if existing else 0)
        await self._check_stock(item.variant_id, quantity)

        merged = replace(existing, quantity=quantity) if existing else item
        self._items[item.cart_key] = merged
        logger.debug(f"Cart: {merged.description or merged.variant_id} x{merged.quantity}")
        return merged

    async def update_quantity(self, key: str, quantity: int) -> Optional[OrderItemDomain]:
        """Set a line quantity; zero or less removes the line."""
        if key not in self._items:
            return None
        if quantity <= 0:
            self.remove_item(key)
            return None

        item = self._items[key]
        await self._check_stock(item.variant_id, quantity)
        self._items[key] = replace(item, quantity=quantity)
        return self._items[key]

    def remove_item(self, key: str) -> bool:
        return self._items.pop(key, None) is not None

    def clear(self) -> None:
        self._items.clear()

    async def find_by_barcode(self, barcode: str) -> Optional[OrderItemDomain]:
        """Variant matching its own barcode or its product barcode, as a one-unit line."""
        row = await self.inventory_repository.find_variant_by_barcode(barcode.strip())
        if row is None:
            logger.info(f"🔍 No variant found for barcode {barcode}")
            return None

        return OrderItemDomain(
            product_id=str(row["product_id"]),
            variant_id=str(row["variant_id"]),
            quantity=1,
            unit_price=Money.from_value(row.get("price"), settings.CURRENCY_CODE),
            cost_price=Money.from_value(row.get("cost_price"), settings.CURRENCY_CODE),
            product_name=row.get("product_name") or "",
            color=row.get("color") or "",
            size=row.get("size") or "",
            barcode=row.get("barcode"),
        )

    def to_order_items(self) -> List[OrderItemDomain]:
        return [replace(item) for item in self._items.values()]
