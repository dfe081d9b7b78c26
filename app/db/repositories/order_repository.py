"""
OrderRepository: orders and order_items.

Rows are mapped to ``OrderDomain`` on the way out; writes accept either the
domain model or a whitelisted dict of column changes.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import text

from app.core.config import get_settings
from app.db.repositories.base import BaseRepository, is_retryable_error, log_operation, with_retry
from app.domain.models import ItemStatus, OrderDomain, OrderItemDomain, OrderStatus
from app.utils.error_handler import DatabaseConnectionException

logger = logging.getLogger(__name__)
settings = get_settings()

# Columns the services are allowed to change with update_order()
UPDATABLE_COLUMNS = frozenset(
    {
        "status",
        "delivery_status",
        "customer_name",
        "customer_phone",
        "customer_phone2",
        "customer_city",
        "customer_province",
        "customer_address",
        "city_id",
        "region_id",
        "total_amount",
        "discount",
        "price_increase",
        "price_change_type",
        "sales_amount",
        "delivery_fee",
        "final_amount",
        "refund_amount",
        "tracking_number",
        "qr_id",
        "delivery_partner_order_id",
        "delivery_account_code",
        "original_order_id",
        "replacement_pair_id",
        "receipt_received",
        "notes",
        "merchant_notes",
    }
)

_ORDER_INSERT_COLUMNS = (
    "order_number",
    "order_type",
    "status",
    "delivery_status",
    "delivery_partner",
    "customer_name",
    "customer_phone",
    "customer_phone2",
    "customer_city",
    "customer_province",
    "customer_address",
    "city_id",
    "region_id",
    "total_amount",
    "discount",
    "price_increase",
    "price_change_type",
    "sales_amount",
    "delivery_fee",
    "final_amount",
    "refund_amount",
    "tracking_number",
    "qr_id",
    "delivery_partner_order_id",
    "created_by",
    "original_order_id",
    "replacement_pair_id",
    "receipt_received",
    "notes",
    "merchant_notes",
)

_ITEMS_QUERY = """
    SELECT oi.id, oi.order_id, oi.product_id, oi.variant_id, oi.quantity, oi.unit_price,
           oi.item_direction, oi.item_status, p.name AS product_name, c.name AS color, s.name AS size,
           pv.barcode, COALESCE(NULLIF(pv.cost_price, 0), p.cost_price, 0) AS cost_price
    FROM order_items oi
    LEFT JOIN products p ON p.id = oi.product_id
    LEFT JOIN product_variants pv ON pv.id = oi.variant_id
    LEFT JOIN colors c ON c.id = pv.color_id
    LEFT JOIN sizes s ON s.id = pv.size_id
    WHERE oi.order_id = ANY(:order_ids)
    ORDER BY oi.created_at
"""

# Últimos 10 dígitos del teléfono, igual que normalize_phone()
_PHONE_EXPR = "RIGHT(REGEXP_REPLACE(customer_phone, '[^0-9]', '', 'g'), 10)"


class OrderRepository(BaseRepository):
    """Repository for order and order-item operations."""

    TABLES = ("orders", "order_items")

    async def _attach_items(self, rows: List[Dict[str, Any]]) -> List[OrderDomain]:
        if not rows:
            return []

        order_ids = [row["id"] for row in rows]
        item_rows = await self.fetch_all(_ITEMS_QUERY, {"order_ids": order_ids})

        items_by_order: Dict[str, List[Dict[str, Any]]] = {}
        for item in item_rows:
            items_by_order.setdefault(str(item["order_id"]), []).append(item)

        orders = []
        for row in rows:
            data = dict(row)
            data["items"] = items_by_order.get(str(row["id"]), [])
            orders.append(OrderDomain.from_dict(data, settings.CURRENCY_CODE))
        return orders

    @log_operation()
    async def get_order(self, order_id: str) -> Optional[OrderDomain]:
        row = await self.fetch_one("SELECT * FROM orders WHERE id = :id", {"id": order_id})
        if row is None:
            return None
        orders = await self._attach_items([row])
        return orders[0]

    async def get_orders_by_ids(self, order_ids: List[str]) -> List[OrderDomain]:
        if not order_ids:
            return []
        rows = await self.fetch_all("SELECT * FROM orders WHERE id = ANY(:ids)", {"ids": list(order_ids)})
        return await self._attach_items(rows)

    @log_operation()
    async def get_active_partner_orders(self, partner: str, terminal_states: List[str]) -> List[OrderDomain]:
        """
        Orders of a courier still worth polling.

        Excludes courier terminal states and local statuses that no longer change.
        """
        rows = await self.fetch_all(
            """
            SELECT * FROM orders
            WHERE delivery_partner = :partner
              AND (delivery_status IS NULL OR NOT (delivery_status = ANY(:terminal_states)))
              AND status NOT IN (:completed, :returned_in_stock)
            ORDER BY created_at DESC
            """,
            {
                "partner": partner,
                "terminal_states": list(terminal_states),
                "completed": OrderStatus.COMPLETED,
                "returned_in_stock": OrderStatus.RETURNED_IN_STOCK,
            },
        )
        return await self._attach_items(rows)

    async def get_reserving_orders(self) -> List[OrderDomain]:
        """Orders whose status may still hold a stock reservation."""
        rows = await self.fetch_all(
            "SELECT * FROM orders WHERE status = ANY(:statuses)",
            {"statuses": list(OrderStatus.RESERVING)},
        )
        return await self._attach_items(rows)

    @with_retry(max_attempts=3, delay=1.0)
    @log_operation("create_order")
    async def create_order(self, order: OrderDomain) -> OrderDomain:
        """
        Insert the order and its items in one transaction.

        Returns:
            OrderDomain: The same order with ``id`` and ``order_number`` filled in
        """
        order_data = order.to_dict()
        params = {column: order_data[column] for column in _ORDER_INSERT_COLUMNS}
        columns = ", ".join(_ORDER_INSERT_COLUMNS)
        placeholders = ", ".join(f":{column}" for column in _ORDER_INSERT_COLUMNS)

        committing = False
        try:
            async with self.get_session() as session:
                async with session.begin():
                    result = await session.execute(
                        text(f"INSERT INTO orders ({columns}) VALUES ({placeholders}) RETURNING id, order_number"),
                        params,
                    )
                    created = result.mappings().one()
                    order.id = str(created["id"])
                    order.order_number = created["order_number"] or order.order_number

                    for item in order.items:
                        result = await session.execute(
                            text(
                                """
                                INSERT INTO order_items
                                    (order_id, product_id, variant_id, quantity,
                                     unit_price, total_price, item_direction)
                                VALUES
                                    (:order_id, :product_id, :variant_id, :quantity,
                                     :unit_price, :total_price, :item_direction)
                                RETURNING id
                                """
                            ),
                            {**item.to_dict(), "order_id": order.id},
                        )
                        item.id = str(result.scalar())
                    # Leaving the block commits; a failure from here on has an unknown outcome
                    committing = True
        except DatabaseConnectionException:
            raise
        except Exception as e:
            logger.error(f"❌ Error creating order for {order.customer_phone}: {e}")
            raise DatabaseConnectionException(
                message=f"Failed to create order: {str(e)}",
                db_host=settings.DB_HOST,
                connection_type="order_creation",
                is_retryable=not committing and is_retryable_error(e),
            ) from e

        logger.info(f"✅ Order created: {order.order_number or order.id} ({len(order.items)} items)")
        return order

    @log_operation()
    async def update_order(self, order_id: str, changes: Dict[str, Any]) -> int:
        """
        Update whitelisted columns of an order.

        Raises:
            ValueError: If a column outside UPDATABLE_COLUMNS is given
        """
        unknown = set(changes) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Columns not updatable: {sorted(unknown)}")
        if not changes:
            return 0

        assignments = ", ".join(f"{column} = :{column}" for column in changes)
        params = {**changes, "id": order_id, "updated_at": datetime.now(UTC)}
        return await self.execute_query_with_commit(
            f"UPDATE orders SET {assignments}, updated_at = :updated_at WHERE id = :id", params
        )

    async def replace_items(self, order_id: str, items: List[OrderItemDomain]) -> None:
        """Replace all items of an order in one transaction."""
        async with self.get_session() as session:
            async with session.begin():
                await session.execute(text("DELETE FROM order_items WHERE order_id = :id"), {"id": order_id})
                for item in items:
                    await session.execute(
                        text(
                            """
                            INSERT INTO order_items
                                (order_id, product_id, variant_id, quantity,
                                 unit_price, total_price, item_direction)
                            VALUES
                                (:order_id, :product_id, :variant_id, :quantity,
                                 :unit_price, :total_price, :item_direction)
                            """
                        ),
                        {**item.to_dict(), "order_id": order_id},
                    )

    @log_operation()
    async def set_items_status(self, order_id: str, item_ids: List[str], item_status: str) -> int:
        """
        Set ``item_status`` on some lines of an order.

        Delivered lines also record the delivered quantity and time.
        """
        if not item_ids:
            return 0

        delivered_columns = ""
        if item_status == ItemStatus.DELIVERED:
            delivered_columns = ", quantity_delivered = quantity, delivered_at = :now"
        return await self.execute_query_with_commit(
            f"""
            UPDATE order_items
            SET item_status = :item_status{delivered_columns}
            WHERE order_id = :order_id AND id::text = ANY(:item_ids)
            """,
            {
                "order_id": order_id,
                "item_ids": [str(item_id) for item_id in item_ids],
                "item_status": item_status,
                "now": datetime.now(UTC),
            },
        )

    async def delete_order(self, order_id: str) -> bool:
        async with self.get_session() as session:
            async with session.begin():
                await session.execute(text("DELETE FROM order_items WHERE order_id = :id"), {"id": order_id})
                result = await session.execute(text("DELETE FROM orders WHERE id = :id"), {"id": order_id})
        return result.rowcount > 0

    async def find_latest_delivered_by_phone(self, phone: str, exclude_order_id: str | None = None) -> Optional[Dict]:
        """Latest delivered or completed order of a normalized phone."""
        return await self.fetch_one(
            f"""
            SELECT id, order_number, tracking_number, final_amount, total_amount, delivery_fee, created_at
            FROM orders
            WHERE {_PHONE_EXPR} = :phone
              AND status IN (:delivered, :completed)
              AND (CAST(:exclude_id AS TEXT) IS NULL OR id::text <> CAST(:exclude_id AS TEXT))
            ORDER BY created_at DESC
            LIMIT 1
            """,
            {
                "phone": phone,
                "delivered": OrderStatus.DELIVERED,
                "completed": OrderStatus.COMPLETED,
                "exclude_id": exclude_order_id,
            },
        )

    async def get_customer_completed_orders(self, phone: str, employee_id: str | None) -> List[Dict[str, Any]]:
        """Completed orders with receipt received for a normalized phone."""
        return await self.fetch_all(
            f"""
            SELECT id, customer_name, final_amount, delivery_fee, created_at
            FROM orders
            WHERE {_PHONE_EXPR} = :phone
              AND status = :completed
              AND receipt_received = TRUE
              AND order_type <> 'return'
              AND (CAST(:employee_id AS TEXT) IS NULL OR created_by::text = CAST(:employee_id AS TEXT))
            ORDER BY created_at
            """,
            {"phone": phone, "completed": OrderStatus.COMPLETED, "employee_id": employee_id},
        )

    async def get_receipt_state(self, order_id: str) -> Optional[Dict[str, Any]]:
        return await self.fetch_one(
            "SELECT id, order_number, status, receipt_received FROM orders WHERE id::text = :id",
            {"id": str(order_id)},
        )

    @with_retry(max_attempts=3, delay=0.2)
    @log_operation()
    async def mark_receipt_received(self, order_id: str) -> Optional[Dict[str, Any]]:
        """
        Record the courier invoice receipt of a delivered order.

        The row is only touched while the receipt is still pending and the order
        is delivered or completed; a delivered order becomes completed.

        Returns:
            The updated ``id``, ``order_number`` and ``status``, or None when the
            conditions no longer hold
        """
        row = await self.execute_query_with_commit(
            """
            UPDATE orders
            SET receipt_received = TRUE,
                receipt_received_at = :now,
                status = CASE WHEN status = :delivered THEN :completed ELSE status END,
                updated_at = :now
            WHERE id::text = :id
              AND receipt_received IS NOT TRUE
              AND status IN (:delivered, :completed)
            RETURNING id, order_number, status
            """,
            {
                "id": str(order_id),
                "now": datetime.now(UTC),
                "delivered": OrderStatus.DELIVERED,
                "completed": OrderStatus.COMPLETED,
            },
        )
        return row if isinstance(row, dict) else None

    async def find_ids_by_partner_order_ids(self, partner: str, partner_order_ids: List[str]) -> Dict[str, str]:
        """Map courier order ids (or tracking numbers) to local order ids."""
        if not partner_order_ids:
            return {}

        rows = await self.fetch_all(
            """
            SELECT id, delivery_partner_order_id, tracking_number
            FROM orders
            WHERE delivery_partner = :partner
              AND (delivery_partner_order_id = ANY(:ids) OR tracking_number = ANY(:ids))
            """,
            {"partner": partner, "ids": [str(value) for value in partner_order_ids]},
        )
        mapping: Dict[str, str] = {}
        for row in rows:
            for key in (row.get("delivery_partner_order_id"), row.get("tracking_number")):
                if key:
                    mapping.setdefault(str(key), str(row["id"]))
        return mapping

    async def count_orders_by_city(self, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        """Delivered/completed orders per customer city in ``[start, end)``."""
        return await self.fetch_all(
            """
            SELECT customer_city AS city_name, COUNT(*) AS orders_count, COALESCE(SUM(final_amount), 0) AS total_amount
            FROM orders
            WHERE created_at >= :start AND created_at < :end
              AND status IN ('delivered', 'completed')
              AND customer_city IS NOT NULL AND customer_city <> ''
            GROUP BY customer_city
            ORDER BY orders_count DESC, total_amount DESC
            """,
            {"start": start, "end": end},
        )
