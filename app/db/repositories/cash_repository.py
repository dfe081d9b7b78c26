"""
CashRepository: cash_sources and cash_movements.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import text

from app.db.repositories.base import BaseRepository, log_operation
from app.domain.models import CashMovement

logger = logging.getLogger(__name__)


class CashRepository(BaseRepository):
    """Repository for cash boxes and their movements."""

    TABLES = ("cash_sources", "cash_movements")

    async def get_source_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        return await self.fetch_one(
            "SELECT id, name, current_balance, is_active FROM cash_sources WHERE name = :name LIMIT 1",
            {"name": name},
        )

    async def get_source(self, source_id: str) -> Optional[Dict[str, Any]]:
        return await self.fetch_one(
            "SELECT id, name, current_balance, is_active FROM cash_sources WHERE id = :id",
            {"id": source_id},
        )

    @log_operation()
    async def apply_movement(self, movement: CashMovement) -> bool:
        """
        Insert the movement and move the source balance in one transaction.

        The balance update is conditional on ``balance_before`` still being the
        current balance.

        Returns:
            bool: False if the balance changed concurrently (nothing written)
        """
        async with self.get_session() as session:
            async with session.begin():
                result = await session.execute(
                    text(
                        "UPDATE cash_sources SET current_balance = :after, updated_at = NOW() "
                        "WHERE id = :id AND current_balance = :before"
                    ),
                    {
                        "id": movement.cash_source_id,
                        "before": movement.balance_before.amount,
                        "after": movement.balance_after.amount,
                    },
                )
                if result.rowcount == 0:
                    return False

                inserted = await session.execute(
                    text(
                        """
                        INSERT INTO cash_movements
                            (cash_source_id, movement_type, amount, balance_before, balance_after,
                             description, reference_type, reference_id, created_by, effective_at)
                        VALUES
                            (:cash_source_id, :movement_type, :amount, :balance_before, :balance_after,
                             :description, :reference_type, :reference_id, :created_by, :effective_at)
                        RETURNING id
                        """
                    ),
                    movement.to_dict(),
                )
                movement.id = str(inserted.scalar())
        return True
