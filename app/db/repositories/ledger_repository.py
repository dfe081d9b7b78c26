"""
LedgerRepository: accounting entries, per-order profits, employee profit
rules and partial delivery history.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from app.db.repositories.base import BaseRepository, log_operation
from app.domain.models import LedgerEntry, ProfitRecord

logger = logging.getLogger(__name__)


class LedgerRepository(BaseRepository):
    """Repository for the bookkeeping tables."""

    TABLES = ("accounting", "profits", "employee_profit_rules", "partial_delivery_history")

    @log_operation()
    async def insert_entry(self, entry: LedgerEntry) -> Optional[str]:
        row = await self.execute_query_with_commit(
            """
            INSERT INTO accounting
                (transaction_type, category, amount, description, expense_type,
                 reference_type, reference_id, created_by)
            VALUES
                (:transaction_type, :category, :amount, :description, :expense_type,
                 :reference_type, :reference_id, :created_by)
            RETURNING id
            """,
            entry.to_dict(),
        )
        return str(row["id"]) if isinstance(row, dict) else None

    async def get_profit_by_order(self, order_id: str) -> Optional[ProfitRecord]:
        row = await self.fetch_one("SELECT * FROM profits WHERE order_id = :order_id LIMIT 1", {"order_id": order_id})
        return ProfitRecord.from_dict(row) if row else None

    async def get_latest_employee_profit(self, employee_id: str) -> Optional[ProfitRecord]:
        row = await self.fetch_one(
            "SELECT * FROM profits WHERE employee_id = :employee_id ORDER BY created_at DESC LIMIT 1",
            {"employee_id": employee_id},
        )
        return ProfitRecord.from_dict(row) if row else None

    @log_operation()
    async def update_profit(self, record: ProfitRecord) -> int:
        return await self.execute_query_with_commit(
            """
            UPDATE profits
            SET total_revenue = :total_revenue, total_cost = :total_cost,
                employee_profit = :employee_profit, profit_amount = :profit_amount,
                status = :status, updated_at = NOW()
            WHERE id = :id
            """,
            record.to_dict(),
        )

    @log_operation()
    async def upsert_profit(self, record: ProfitRecord) -> str:
        """Update the order's profit row, or create it."""
        existing = await self.get_profit_by_order(record.order_id)
        if existing is not None:
            record.id = existing.id
            await self.update_profit(record)
            return record.id

        row = await self.execute_query_with_commit(
            """
            INSERT INTO profits
                (order_id, employee_id, total_revenue, total_cost, employee_profit, profit_amount, status)
            VALUES
                (:order_id, :employee_id, :total_revenue, :total_cost, :employee_profit, :profit_amount, :status)
            RETURNING id
            """,
            record.to_dict(),
        )
        record.id = str(row["id"])
        return record.id

    async def get_employee_profit_rules(self, employee_id: str) -> List[Dict[str, Any]]:
        return await self.fetch_all(
            """
            SELECT rule_type, target_id, profit_amount
            FROM employee_profit_rules
            WHERE employee_id = :employee_id AND is_active = TRUE
            """,
            {"employee_id": employee_id},
        )

    async def get_product_categories(self, product_ids: List[str]) -> Dict[str, str]:
        """Main category id per product id."""
        if not product_ids:
            return {}
        rows = await self.fetch_all(
            """
            SELECT pc.product_id, pc.category_id
            FROM product_categories pc
            WHERE pc.product_id = ANY(:ids)
            ORDER BY pc.created_at
            """,
            {"ids": list(product_ids)},
        )
        categories: Dict[str, str] = {}
        for row in rows:
            categories.setdefault(str(row["product_id"]), str(row["category_id"]))
        return categories

    async def has_partial_delivery_history(self, order_id: str) -> bool:
        row = await self.fetch_one(
            "SELECT id FROM partial_delivery_history WHERE order_id = :order_id LIMIT 1", {"order_id": order_id}
        )
        return row is not None

    @log_operation()
    async def insert_partial_delivery_history(self, history: Dict[str, Any]) -> int:
        params = dict(history)
        params["delivered_items"] = json.dumps(history["delivered_items"], ensure_ascii=False, default=str)
        params["undelivered_items"] = json.dumps(history["undelivered_items"], ensure_ascii=False, default=str)
        return await self.execute_query_with_commit(
            """
            INSERT INTO partial_delivery_history
                (order_id, delivered_items, undelivered_items, delivered_revenue, delivered_cost,
                 employee_profit, system_profit, delivery_fee_allocated, processed_by)
            VALUES
                (:order_id, CAST(:delivered_items AS JSONB), CAST(:undelivered_items AS JSONB), :delivered_revenue,
                 :delivered_cost, :employee_profit, :system_profit, :delivery_fee_allocated, :processed_by)
            """,
            params,
        )
