"""Tests unitarios para la sincronización de estados con los socios de entrega."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain.models import (
    DeliveryPartner,
    ItemDirection,
    ItemStatus,
    OrderDomain,
    OrderItemDomain,
    OrderStatus,
    OrderType,
)
from app.domain.value_objects.money import Money
from app.services.delivery.status_synchronizer import (
    OrderStatusSynchronizer,
    build_partner_index,
    find_partner_order,
    partner_state_id,
)
from app.utils.error_handler import DatabaseConnectionException, LockAcquisitionException


class FakeLock:
    """Lock en memoria; falla si el id está en ``locked``."""

    locked = set()

    def __init__(self, order_id):
        self.order_id = order_id

    async def __aenter__(self):
        if self.order_id in self.locked:
            raise LockAcquisitionException("locked", lock_key=f"order_sync:{self.order_id}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


def make_order(order_id="1", delivery_status="3", status=OrderStatus.DELIVERY, **kwargs):
    defaults = {
        "items": [OrderItemDomain(product_id="p1", variant_id="v1", quantity=2, unit_price=Money(Decimal("12500")))],
        "total_amount": Money(Decimal("25000")),
        "delivery_fee": Money(Decimal("5000")),
        "final_amount": Money(Decimal("30000")),
    }
    defaults.update(kwargs)
    return OrderDomain(
        id=order_id,
        customer_name="علي",
        customer_phone="07701234567",
        delivery_partner=DeliveryPartner.ALWASEET,
        delivery_partner_order_id=f"W{order_id}",
        delivery_status=delivery_status,
        status=status,
        **defaults,
    )


class TestPartnerIndex:
    """Tests para el índice de pedidos del socio."""

    def test_find_by_id_qr_and_tracking(self):
        """Debe encontrar pedidos por id, QR o número de seguimiento."""
        index = build_partner_index(
            [{"id": "W1", "qr_id": "Q1"}, {"id": "W2", "tracking_number": "T2"}, {"qr_id": "Q3"}]
        )
        order = make_order(order_id="9")
        order.qr_id = "Q3"
        assert find_partner_order(order, index) == {"qr_id": "Q3"}

        order.delivery_partner_order_id = "W1"
        assert find_partner_order(order, index)["id"] == "W1"

        order.delivery_partner_order_id = None
        order.qr_id = None
        order.tracking_number = "T2"
        assert find_partner_order(order, index)["id"] == "W2"

    def test_partner_state_id(self):
        """Debe leer el estado desde status_id, state_id o status."""
        assert partner_state_id({"status_id": 4}) == "4"
        assert partner_state_id({"state_id": "", "status": " 17 "}) == "17"
        assert partner_state_id({}) == ""


class TestOrderStatusSynchronizer:
    """Tests para la sincronización de pedidos."""

    def setup_method(self):
        FakeLock.locked = set()
        self.order_repository = MagicMock()
        self.order_repository.update_order = AsyncMock(return_value=True)
        self.inventory_repository = MagicMock()
        self.inventory_repository.finalize_sale = AsyncMock()
        self.inventory_repository.release_reservation = AsyncMock()
        self.inventory_repository.restock = AsyncMock()
        self.ledger_repository = MagicMock()
        self.ledger_repository.has_partial_delivery_history = AsyncMock(return_value=False)
        self.return_handler = MagicMock()
        self.return_handler.handle = AsyncMock(return_value={"action": "completed"})
        self.replacement_handler = MagicMock()
        self.replacement_handler.handle = AsyncMock(return_value={"entries": []})
        self.synchronizer = OrderStatusSynchronizer(
            order_repository=self.order_repository,
            inventory_repository=self.inventory_repository,
            ledger_repository=self.ledger_repository,
            return_handler=self.return_handler,
            replacement_handler=self.replacement_handler,
            lock_factory=FakeLock,
        )

    @pytest.mark.asyncio
    async def test_delivered_state_finalizes_sale(self):
        """Debe actualizar el estado y finalizar la venta del stock reservado."""
        order = make_order()

        partner_order = {"id": "W1", "status_id": "4", "price": "30000", "delivery_price": "5000"}
        result = await self.synchronizer.sync_order(order, partner_order)

        changes = self.order_repository.update_order.await_args.args[1]
        assert changes["delivery_status"] == "4"
        assert changes["status"] == OrderStatus.DELIVERED
        assert "total_amount" not in changes
        assert result["handlers"]["stock"]["action"] == "sold"
        self.inventory_repository.finalize_sale.assert_awaited_once_with("v1", 2)
        assert order.status == OrderStatus.DELIVERED

    @pytest.mark.asyncio
    async def test_returned_to_merchant_releases(self):
        """Debe liberar la reserva cuando el pedido vuelve al comerciante."""
        order = make_order(delivery_status="16", status=OrderStatus.RETURNED)

        result = await self.synchronizer.sync_order(order, {"id": "W1", "status_id": "17"})

        assert result["handlers"]["stock"]["action"] == "released"
        self.inventory_repository.release_reservation.assert_awaited_once_with("v1", 2)
        self.inventory_repository.finalize_sale.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_price_change_is_applied(self):
        """Debe aplicar el nuevo precio del socio y anotar el cambio."""
        order = make_order()

        result = await self.synchronizer.sync_order(
            order, {"id": "W1", "status_id": "3", "price": "27000", "delivery_price": "5000"}
        )

        changes = self.order_repository.update_order.await_args.args[1]
        assert changes["final_amount"] == Decimal("27000")
        assert changes["discount"] == Decimal("3000")
        assert "السعر تغير من 30,000 إلى 27,000" in changes["notes"]
        assert "delivery_status" not in changes
        assert result["handlers"] == {}
        assert order.final_amount.amount == Decimal("27000")

    @pytest.mark.asyncio
    async def test_partial_delivery_history_protects_price(self):
        """Debe dejar el precio intacto si el pedido tiene entrega parcial."""
        self.ledger_repository.has_partial_delivery_history = AsyncMock(return_value=True)
        order = make_order()

        result = await self.synchronizer.sync_order(order, {"id": "W1", "status_id": "3", "price": "20000"})

        assert result["changes"] == []
        self.order_repository.update_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_partial_delivery_requires_manual_processing(self):
        """Debe marcar el estado 21 para procesamiento manual sin tocar el stock."""
        order = make_order()

        partner_order = {"id": "W1", "status_id": "21", "price": "30000", "delivery_price": "5000"}
        result = await self.synchronizer.sync_order(order, partner_order)

        assert result["handlers"]["partial_delivery"] == {"requires_manual_processing": True}
        assert "stock" not in result["handlers"]

    @pytest.mark.asyncio
    async def test_return_order_uses_return_handler(self):
        """Debe delegar los pedidos de devolución al manejador de devoluciones."""
        order = make_order(
            order_type=OrderType.RETURN,
            total_amount=Money(Decimal("15000")),
            refund_amount=Money(Decimal("15000")),
            final_amount=Money(Decimal("-15000")),
            delivery_fee=Money(Decimal("0")),
        )

        result = await self.synchronizer.sync_order(order, {"id": "W1", "status_id": "21"})

        changes = self.order_repository.update_order.await_args.args[1]
        assert "status" not in changes
        assert result["handlers"] == {"return": {"action": "completed"}}
        self.return_handler.handle.assert_awaited_once_with("1", "21")

    @pytest.mark.asyncio
    async def test_delivered_replacement_books_and_restocks(self):
        """Debe ejecutar la contabilidad del استبدال y reingresar lo recogido."""
        items = [
            OrderItemDomain(
                product_id="p1",
                variant_id="old",
                quantity=1,
                unit_price=Money(Decimal("20000")),
                item_direction=ItemDirection.OUTGOING,
            ),
            OrderItemDomain(
                product_id="p2",
                variant_id="new",
                quantity=1,
                unit_price=Money(Decimal("25000")),
                item_direction=ItemDirection.INCOMING,
            ),
        ]
        order = make_order(
            order_type=OrderType.REPLACEMENT,
            items=items,
            total_amount=Money(Decimal("5000")),
            final_amount=Money(Decimal("10000")),
        )

        partner_order = {"id": "W1", "status_id": "4", "price": "10000", "delivery_price": "5000"}
        result = await self.synchronizer.sync_order(order, partner_order)

        self.replacement_handler.handle.assert_awaited_once_with(order)
        self.inventory_repository.finalize_sale.assert_awaited_once_with("new", 1)
        self.inventory_repository.restock.assert_awaited_once()
        assert result["handlers"]["stock"]["restocked"] == 1

    @pytest.mark.asyncio
    async def test_sync_counts_locked_and_unmatched(self):
        """Debe contar pedidos bloqueados y omitir los no encontrados."""
        orders = [make_order("1"), make_order("2"), make_order("3")]
        self.order_repository.get_active_partner_orders = AsyncMock(return_value=orders)
        FakeLock.locked = {"2"}
        partner_orders = [
            {"id": "W1", "status_id": "4", "price": "30000", "delivery_price": "5000"},
            {"id": "W2", "status_id": "4", "price": "30000", "delivery_price": "5000"},
        ]

        stats = await self.synchronizer.sync(DeliveryPartner.ALWASEET, partner_orders=partner_orders)

        assert stats["checked"] == 3
        assert stats["matched"] == 2
        assert stats["skipped_locked"] == 1
        assert stats["updated"] == 1
        assert stats["errors"] == 0
        self.order_repository.get_active_partner_orders.assert_awaited_once_with(
            DeliveryPartner.ALWASEET, ["17", "31", "32"]
        )

    @pytest.mark.asyncio
    async def test_failed_handler_keeps_state_for_next_sync(self):
        """Debe dejar el estado sin guardar si falla un manejador y reintentarlo en la siguiente pasada."""
        items = [
            OrderItemDomain(
                product_id="p2",
                variant_id="new",
                quantity=1,
                unit_price=Money(Decimal("25000")),
                item_direction=ItemDirection.INCOMING,
            ),
        ]
        self.order_repository.get_active_partner_orders = AsyncMock(
            side_effect=lambda *args: [
                make_order(
                    order_type=OrderType.REPLACEMENT,
                    items=items,
                    total_amount=Money(Decimal("25000")),
                    final_amount=Money(Decimal("30000")),
                )
            ]
        )
        self.replacement_handler.handle.side_effect = [DatabaseConnectionException("down"), {"entries": []}]
        partner_orders = [{"id": "W1", "status_id": "4", "price": "30000", "delivery_price": "5000"}]

        first = await self.synchronizer.sync(DeliveryPartner.ALWASEET, partner_orders=partner_orders)

        assert first["errors"] == 1
        self.order_repository.update_order.assert_not_awaited()
        self.inventory_repository.finalize_sale.assert_not_awaited()

        second = await self.synchronizer.sync(DeliveryPartner.ALWASEET, partner_orders=partner_orders)

        assert second["updated"] == 1
        assert self.replacement_handler.handle.await_count == 2
        self.inventory_repository.finalize_sale.assert_awaited_once_with("new", 1)
        changes = self.order_repository.update_order.await_args.args[1]
        assert changes["delivery_status"] == "4"
        assert changes["status"] == OrderStatus.DELIVERED

    @pytest.mark.asyncio
    async def test_return_after_partial_delivery_releases_only_pending_items(self):
        """Debe liberar solo las líneas pendientes de devolución tras una entrega parcial."""
        self.ledger_repository.has_partial_delivery_history = AsyncMock(return_value=True)
        items = [
            OrderItemDomain(
                id="1",
                product_id="p1",
                variant_id="v1",
                quantity=1,
                unit_price=Money(Decimal("12500")),
                item_status=ItemStatus.DELIVERED,
            ),
            OrderItemDomain(
                id="2",
                product_id="p2",
                variant_id="v2",
                quantity=1,
                unit_price=Money(Decimal("12500")),
                item_status=ItemStatus.PENDING_RETURN,
            ),
        ]
        order = make_order(delivery_status="21", status=OrderStatus.PARTIAL_DELIVERY, items=items)

        result = await self.synchronizer.sync_order(order, {"id": "W1", "status_id": "17"})

        assert result["handlers"]["stock"] == {"action": "released", "items": 1, "restocked": 0}
        self.inventory_repository.release_reservation.assert_awaited_once_with("v2", 1)
