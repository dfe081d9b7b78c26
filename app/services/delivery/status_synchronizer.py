"""
Order status synchronization with a courier.

Active local orders are matched to the courier's merchant orders by courier
id, QR id or tracking number. For each match the new state is mapped through
the status registry, prices are reconciled and the financial handlers run.
Every order is processed under its own ``OrderLock``.
"""

import logging
import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from app.core.logging_config import LogContext, log_delivery_operation
from app.db.repositories import InventoryRepository, LedgerRepository, OrderRepository
from app.domain.models import DeliveryPartner, OrderDomain, OrderStatus
from app.domain.value_objects.money import Money
from app.services.delivery.clients import WaseetClient
from app.services.delivery.price_reconciler import reconcile_prices
from app.services.delivery.reservation_policy import should_release_stock
from app.services.delivery.statuses import (
    ALWASEET_TERMINAL_STATES,
    MODON_TERMINAL_STATES,
    DeliveryStatusRegistry,
    status_registry,
)
from app.services.finance import ReplacementFinancialHandler, ReturnStatusHandler
from app.utils.error_handler import AppException, LockAcquisitionException
from app.utils.order_lock import OrderLock

logger = logging.getLogger(__name__)

TERMINAL_STATES = {
    DeliveryPartner.ALWASEET: ALWASEET_TERMINAL_STATES,
    DeliveryPartner.MODON: MODON_TERMINAL_STATES,
}


def build_partner_index(partner_orders: Iterable[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Index courier orders by ``id_``, ``qr_`` and ``track_`` keys."""
    index: Dict[str, Dict[str, Any]] = {}
    for partner_order in partner_orders:
        if partner_order.get("id"):
            index[f"id_{partner_order['id']}"] = partner_order
        if partner_order.get("qr_id"):
            index[f"qr_{partner_order['qr_id']}"] = partner_order
        if partner_order.get("tracking_number"):
            index[f"track_{partner_order['tracking_number']}"] = partner_order
    return index


def find_partner_order(order: OrderDomain, index: Dict[str, Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Courier id first, then QR id, then tracking number."""
    for prefix, value in (
        ("id", order.delivery_partner_order_id),
        ("qr", order.qr_id),
        ("track", order.tracking_number),
    ):
        if value and f"{prefix}_{value}" in index:
            return index[f"{prefix}_{value}"]
    return None


def partner_state_id(partner_order: Dict[str, Any]) -> str:
    for key in ("status_id", "state_id", "status"):
        value = partner_order.get(key)
        if value not in (None, ""):
            return str(value).strip()
    return ""


class OrderStatusSynchronizer:
    """Apply courier order states to the local orders."""

    def __init__(
        self,
        order_repository: OrderRepository,
        inventory_repository: InventoryRepository,
        ledger_repository: LedgerRepository,
        return_handler: ReturnStatusHandler,
        replacement_handler: ReplacementFinancialHandler,
        registry: DeliveryStatusRegistry = status_registry,
        client_factory=WaseetClient,
        lock_factory=OrderLock,
    ):
        self.order_repository = order_repository
        self.inventory_repository = inventory_repository
        self.ledger_repository = ledger_repository
        self.return_handler = return_handler
        self.replacement_handler = replacement_handler
        self.registry = registry
        self.client_factory = client_factory
        self.lock_factory = lock_factory

    async def fetch_partner_orders(self, partner: str, token: Optional[str] = None) -> List[Dict[str, Any]]:
        async with self.client_factory(partner, token) as client:
            return await client.get_merchant_orders()

    async def sync(
        self,
        partner: str = DeliveryPartner.ALWASEET,
        partner_orders: Optional[List[Dict[str, Any]]] = None,
        token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Synchronize every active order of ``partner``.

        Args:
            partner: Courier code
            partner_orders: Courier orders already fetched; fetched from the API when None
            token: Courier token override

        Returns:
            dict: checked, matched, updated, skipped_locked, errors and per-order changes
        """
        started = time.time()
        if partner_orders is None:
            partner_orders = await self.fetch_partner_orders(partner, token)
        index = build_partner_index(partner_orders)

        terminal_states = sorted(TERMINAL_STATES.get(partner, frozenset()))
        orders = await self.order_repository.get_active_partner_orders(partner, terminal_states)
        logger.info(f"🚚 Syncing {len(orders)} active {partner} orders against {len(partner_orders)} courier orders")

        stats: Dict[str, Any] = {
            "partner": partner,
            "checked": len(orders),
            "matched": 0,
            "updated": 0,
            "skipped_locked": 0,
            "errors": 0,
            "changes": [],
        }

        for order in orders:
            partner_order = find_partner_order(order, index)
            if partner_order is None:
                logger.debug(f"⏭️ Order {order.display_reference} not found in courier results")
                continue
            stats["matched"] += 1

            try:
                with LogContext(order_id=order.id, partner=partner):
                    async with self.lock_factory(order.id):
                        result = await self.sync_order(order, partner_order)
            except LockAcquisitionException:
                stats["skipped_locked"] += 1
                continue
            except AppException as e:
                stats["errors"] += 1
                logger.error(f"❌ Failed to sync order {order.display_reference}: {e.message}")
                continue

            if result["changes"]:
                stats["updated"] += 1
                stats["changes"].append(result)

        stats["duration_seconds"] = round(time.time() - started, 2)
        log_delivery_operation(
            "sync_order_statuses",
            partner,
            checked=stats["checked"],
            updated=stats["updated"],
            errors=stats["errors"],
        )
        logger.info(
            f"✅ {partner} sync finished: {stats['checked']} checked, {stats['updated']} updated, "
            f"{stats['errors']} errors"
        )
        return stats

    async def sync_order(self, order: OrderDomain, partner_order: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply one courier order to its local order.

        Callers hold the order lock.
        """
        partner = order.delivery_partner
        new_state = partner_state_id(partner_order)
        previous_status = order.status
        previous_state = order.delivery_status

        changes: Dict[str, Any] = {}
        messages: List[str] = []
        result: Dict[str, Any] = {
            "order_id": order.id,
            "reference": order.display_reference,
            "changes": messages,
            "handlers": {},
        }

        config = None
        if new_state and new_state != (previous_state or ""):
            config = self.registry.get_status_config(
                partner,
                new_state,
                current_status=previous_status,
                status_text=partner_order.get("status_text") or "",
            )
            changes["delivery_status"] = new_state
            # Return orders get their local status from the return handler
            if not order.is_return:
                changes["status"] = config.internal_status
            if config.receipt_received and not order.receipt_received:
                changes["receipt_received"] = True
            messages.append(f"الحالة: {previous_state or '-'} → {new_state} ({config.text})")

        if await self.ledger_repository.has_partial_delivery_history(order.id):
            logger.info(f"🛡️ Order {order.display_reference} has a partial delivery, price left untouched")
        else:
            reconciliation = reconcile_prices(partner_order, order)
            if reconciliation.needs_update and reconciliation.is_valid:
                changes.update(reconciliation.updates)
                old_final = order.final_amount
                new_final = reconciliation.updates["final_amount"]
                order.append_note(
                    f"[{datetime.now().isoformat(timespec='seconds')}] السعر تغير من "
                    f"{int(old_final):,} إلى {int(new_final):,} د.ع"
                )
                changes["notes"] = order.notes
                messages.append(f"السعر: {int(old_final)} → {int(new_final)} د.ع")

        if not changes:
            return result

        self._apply_changes(order, changes)

        # State is persisted after the handlers; a failed handler is retried by the next sync
        if config is not None:
            result["handlers"] = await self._dispatch(order, config, previous_status, previous_state)

        await self.order_repository.update_order(order.id, changes)

        logger.info(f"✅ Order {order.display_reference} updated: {'، '.join(messages)}")
        return result

    @staticmethod
    def _apply_changes(order: OrderDomain, changes: Dict[str, Any]) -> None:
        money_fields = {"total_amount", "sales_amount", "delivery_fee", "final_amount", "discount", "price_increase"}
        for key, value in changes.items():
            if key in money_fields:
                current = getattr(order, key)
                setattr(order, key, Money.from_value(value, current.currency))
            else:
                setattr(order, key, value)

    async def _dispatch(self, order: OrderDomain, config, previous_status: str, previous_state: Optional[str]):
        handlers: Dict[str, Any] = {}

        if order.is_return:
            handlers["return"] = await self.return_handler.handle(order.id, order.delivery_status)
            return handlers

        if config.internal_status == OrderStatus.PARTIAL_DELIVERY:
            # Delivered items are chosen by hand before the partial delivery is booked
            handlers["partial_delivery"] = {"requires_manual_processing": True}
            logger.warning(f"✋ Order {order.display_reference} partially delivered, manual processing required")

        if order.is_replacement and config.internal_status == OrderStatus.DELIVERED:
            handlers["replacement"] = await self.replacement_handler.handle(order)

        already_released = should_release_stock(previous_status, previous_state, order.delivery_partner)
        if config.releases_stock and not already_released:
            handlers["stock"] = await self._release_stock(order, config.internal_status)

        return handlers

    async def _release_stock(self, order: OrderDomain, internal_status: str) -> Dict[str, Any]:
        sold = internal_status in (OrderStatus.DELIVERED, OrderStatus.COMPLETED)
        for item in order.reserved_items:
            if sold:
                await self.inventory_repository.finalize_sale(item.variant_id, item.quantity)
            else:
                await self.inventory_repository.release_reservation(item.variant_id, item.quantity)

        restocked = 0
        if sold:
            for item in order.collected_items:
                await self.inventory_repository.restock(
                    item.variant_id, item.quantity, f"استبدال - {order.display_reference}"
                )
                restocked += 1

        action = "sold" if sold else "released"
        logger.info(f"📦 Stock {action} for order {order.display_reference}")
        return {"action": action, "items": len(order.reserved_items), "restocked": restocked}
