"""
InventoryRepository: stock and reservations per product variant.

``quantity`` is the physical stock; ``reserved_quantity`` is what open orders
hold. Available stock is ``quantity - reserved_quantity``.
"""

import logging
from typing import Any, Dict, List, Optional

from app.db.repositories.base import BaseRepository, log_operation

logger = logging.getLogger(__name__)


class InventoryRepository(BaseRepository):
    """Repository for the inventory table."""

    TABLES = ("inventory", "product_variants")

    async def get_stock(self, variant_id: str) -> Optional[Dict[str, Any]]:
        return await self.fetch_one(
            "SELECT product_id, variant_id, quantity, reserved_quantity FROM inventory WHERE variant_id = :variant_id",
            {"variant_id": variant_id},
        )

    async def get_stock_for_variants(self, variant_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        if not variant_ids:
            return {}
        rows = await self.fetch_all(
            "SELECT product_id, variant_id, quantity, reserved_quantity FROM inventory WHERE variant_id = ANY(:ids)",
            {"ids": list(variant_ids)},
        )
        return {str(row["variant_id"]): row for row in rows}

    @log_operation()
    async def reserve(self, variant_id: str, quantity: int) -> int:
        return await self.execute_query_with_commit(
            "UPDATE inventory SET reserved_quantity = reserved_quantity + :qty, updated_at = NOW() "
            "WHERE variant_id = :variant_id",
            {"variant_id": variant_id, "qty": quantity},
        )

    @log_operation()
    async def release_reservation(self, variant_id: str, quantity: int) -> int:
        return await self.execute_query_with_commit(
            "UPDATE inventory SET reserved_quantity = GREATEST(0, reserved_quantity - :qty), updated_at = NOW() "
            "WHERE variant_id = :variant_id",
            {"variant_id": variant_id, "qty": quantity},
        )

    @log_operation()
    async def finalize_sale(self, variant_id: str, quantity: int) -> int:
        """Delivered: the reserved units leave the physical stock."""
        return await self.execute_query_with_commit(
            """
            UPDATE inventory
            SET quantity = GREATEST(0, quantity - :qty),
                reserved_quantity = GREATEST(0, reserved_quantity - :qty),
                sold_quantity = COALESCE(sold_quantity, 0) + :qty,
                updated_at = NOW()
            WHERE variant_id = :variant_id
            """,
            {"variant_id": variant_id, "qty": quantity},
        )

    @log_operation()
    async def restock(self, variant_id: str, quantity: int, reason: str) -> int:
        """Put units back on the shelf (returns)."""
        logger.info(f"📦 Restock {variant_id} +{quantity}: {reason}")
        return await self.execute_query_with_commit(
            "UPDATE inventory SET quantity = quantity + :qty, updated_at = NOW() WHERE variant_id = :variant_id",
            {"variant_id": variant_id, "qty": quantity},
        )

    async def find_variant_by_barcode(self, barcode: str) -> Optional[Dict[str, Any]]:
        """Variant matching its own barcode or its product barcode."""
        return await self.fetch_one(
            """
            SELECT pv.id AS variant_id, pv.product_id, p.name AS product_name, pv.price,
                   COALESCE(NULLIF(pv.cost_price, 0), p.cost_price, 0) AS cost_price,
                   c.name AS color, s.name AS size, pv.barcode,
                   COALESCE(i.quantity, 0) AS quantity, COALESCE(i.reserved_quantity, 0) AS reserved_quantity
            FROM product_variants pv
            JOIN products p ON p.id = pv.product_id
            LEFT JOIN colors c ON c.id = pv.color_id
            LEFT JOIN sizes s ON s.id = pv.size_id
            LEFT JOIN inventory i ON i.variant_id = pv.id
            WHERE pv.barcode = :barcode OR p.barcode = :barcode
            ORDER BY (pv.barcode = :barcode) DESC
            LIMIT 1
            """,
            {"barcode": barcode},
        )
