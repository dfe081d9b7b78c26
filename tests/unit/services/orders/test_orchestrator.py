"""Tests unitarios para OrderOrchestrator (creación, edición y eliminación)."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain.models import (
    CustomerLoyalty,
    DeliveryPartner,
    ItemDirection,
    OrderDomain,
    OrderItemDomain,
    OrderStatus,
    OrderType,
    PriceChangeType,
)
from app.domain.value_objects.money import Money
from app.services.loyalty import TIERS
from app.services.orders.orchestrator import OrderOrchestrator
from app.services.orders.validators import OrderValidator
from app.utils.error_handler import (
    DatabaseConnectionException,
    LockAcquisitionException,
    OrderNotFoundException,
    OrderStateException,
    ValidationException,
)


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


def money(value):
    return Money(Decimal(str(value)))


def loyalty(tier_index=0):
    return CustomerLoyalty(
        phone="7701234567",
        completed_orders=0,
        points=0,
        total_spent_excl_delivery=money(0),
        tier=TIERS[tier_index],
    )


def stored_order(order_id="1", **kwargs):
    fields = {
        "id": order_id,
        "customer_name": "نور",
        "customer_phone": "07701234567",
        "items": [OrderItemDomain(product_id="p1", variant_id="v1", quantity=2, unit_price=money(15000))],
        "total_amount": money(30000),
        "sales_amount": money(30000),
        "delivery_fee": money(5000),
        "final_amount": money(35000),
    }
    fields.update(kwargs)
    return OrderDomain(**fields)


def line(variant_id="v1", quantity=2, price=15000, direction=None):
    data = {"product_id": "p1", "variant_id": variant_id, "quantity": quantity, "unit_price": price}
    if direction:
        data["item_direction"] = direction
    return data


class TestOrderOrchestratorCreate:
    """Tests para la creación de pedidos."""

    def setup_method(self):
        async def persist(order):
            order.id = "100"
            order.order_number = "ORD-100"
            return order

        self.order_repository = MagicMock()
        self.order_repository.create_order = AsyncMock(side_effect=persist)
        self.order_repository.get_order = AsyncMock(return_value=None)

        self.inventory_manager = MagicMock()
        self.inventory_manager.validate_and_reserve = AsyncMock(return_value={"v1": 2})
        self.inventory_manager.release = AsyncMock(return_value={"v1": 2})

        self.loyalty_service = MagicMock()
        self.loyalty_service.get_customer_loyalty = AsyncMock(return_value=loyalty())

        self.linker = MagicMock()
        self.linker.link_return_to_original = AsyncMock(return_value={"linked": False, "error": "x"})
        self.linker.link_replacement_pair = AsyncMock(return_value="pair-1")

        self.orchestrator = OrderOrchestrator(
            validator=OrderValidator(),
            order_repository=self.order_repository,
            inventory_manager=self.inventory_manager,
            loyalty_service=self.loyalty_service,
            linker=self.linker,
            lock_factory=FakeLock,
        )

    def request(self, **overrides):
        request = {"customer_name": "نور", "customer_phone": "07701234567", "items": [line()]}
        request.update(overrides)
        return request

    @pytest.mark.asyncio
    async def test_create_regular_order(self):
        """Debe calcular totales, resolver la ciudad y reservar stock."""
        result = await self.orchestrator.create_order(self.request(customer_city="Basra"))

        assert result["totals"]["total_amount"] == 30000
        assert result["totals"]["final_amount"] == 35000
        assert result["order"]["customer_city"] == "البصرة"
        assert result["order"]["customer_province"] == "البصرة"
        assert result["order"]["status"] == OrderStatus.PENDING
        assert result["reserved"] == {"v1": 2}
        assert result["loyalty"]["discount"] == 0
        self.inventory_manager.validate_and_reserve.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_loyalty_tier_discount_and_free_delivery(self):
        """Debe aplicar el descuento del nivel y eliminar el envío en niveles superiores."""
        self.loyalty_service.get_customer_loyalty.return_value = loyalty(tier_index=2)

        result = await self.orchestrator.create_order(self.request())

        assert result["totals"]["discount"] == 3000
        assert result["totals"]["delivery_fee"] == 0
        assert result["totals"]["final_amount"] == 27000
        assert result["loyalty"]["delivery_waived"] is True

    @pytest.mark.asyncio
    async def test_manual_discount_larger_than_loyalty_wins(self):
        """Debe conservar el descuento manual si es mayor que el del nivel."""
        self.loyalty_service.get_customer_loyalty.return_value = loyalty(tier_index=1)

        result = await self.orchestrator.create_order(self.request(discount=4000))

        assert result["totals"]["discount"] == 4000

    @pytest.mark.asyncio
    async def test_invalid_request_does_not_touch_stock(self):
        """Debe validar antes de reservar."""
        with pytest.raises(ValidationException):
            await self.orchestrator.create_order(self.request(customer_phone="123"))

        self.inventory_manager.validate_and_reserve.assert_not_awaited()
        self.order_repository.create_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_persist_releases_reservation(self):
        """Debe liberar la reserva si el pedido no se pudo guardar."""
        self.order_repository.create_order.side_effect = DatabaseConnectionException("down")

        with pytest.raises(DatabaseConnectionException):
            await self.orchestrator.create_order(self.request())

        self.inventory_manager.release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_return_links_original_and_reserves_nothing(self):
        """Debe buscar el pedido original y sugerir el reembolso sin reservar stock."""
        self.linker.link_return_to_original.return_value = {
            "linked": True,
            "original_order_id": "40",
            "original_order_number": "ORD-40",
        }
        self.order_repository.get_order.return_value = stored_order(
            "40", total_amount=money(40000), final_amount=money(45000), status=OrderStatus.COMPLETED
        )

        result = await self.orchestrator.create_order(self.request(order_type=OrderType.RETURN))

        assert result["links"]["linked"] is True
        assert result["order"]["original_order_id"] == "40"
        assert result["order"]["refund_amount"] == 40000
        assert result["order"]["final_amount"] == -40000
        assert result["reserved"] == {}
        self.inventory_manager.validate_and_reserve.assert_not_awaited()
        self.loyalty_service.get_customer_loyalty.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_return_with_unknown_original(self):
        """Debe fallar si el pedido original indicado no existe."""
        with pytest.raises(OrderNotFoundException):
            await self.orchestrator.create_order(self.request(order_type=OrderType.RETURN, original_order_id="404"))

    @pytest.mark.asyncio
    async def test_replacement_reserves_only_sent_items(self):
        """Debe reservar sólo lo enviado y emparejar con el pedido original."""
        self.order_repository.get_order.return_value = stored_order("40", status=OrderStatus.COMPLETED)
        items = [
            line("v1", 1, 20000, ItemDirection.OUTGOING),
            line("v2", 1, 25000, ItemDirection.INCOMING),
        ]

        result = await self.orchestrator.create_order(
            self.request(order_type=OrderType.REPLACEMENT, original_order_id="40", items=items)
        )

        reserved_items = self.inventory_manager.validate_and_reserve.await_args.args[0]
        assert [item.variant_id for item in reserved_items] == ["v2"]
        assert result["totals"]["price_difference"] == 5000
        assert result["totals"]["final_amount"] == 10000
        assert result["links"]["replacement_pair_id"] == "pair-1"


class TestOrderOrchestratorUpdateDelete:
    """Tests para la edición y eliminación de pedidos."""

    def setup_method(self):
        FakeLock.locked = set()
        self.order_repository = MagicMock()
        self.order_repository.get_order = AsyncMock(return_value=stored_order())
        self.order_repository.update_order = AsyncMock()
        self.order_repository.replace_items = AsyncMock()
        self.order_repository.delete_order = AsyncMock(return_value=True)

        self.inventory_manager = MagicMock()
        self.inventory_manager.adjust_for_update = AsyncMock(return_value={"v1": 1})
        self.inventory_manager.release = AsyncMock(return_value={"v1": 2})

        self.orchestrator = OrderOrchestrator(
            validator=OrderValidator(),
            order_repository=self.order_repository,
            inventory_manager=self.inventory_manager,
            loyalty_service=MagicMock(),
            linker=MagicMock(),
            lock_factory=FakeLock,
        )

    @pytest.mark.asyncio
    async def test_update_items_adjusts_reservation(self):
        """Debe ajustar reservas por diferencia y recalcular totales."""
        result = await self.orchestrator.update_order("1", {"items": [line(quantity=3)]})

        self.inventory_manager.adjust_for_update.assert_awaited_once()
        self.order_repository.replace_items.assert_awaited_once()
        order_id, updates = self.order_repository.update_order.await_args.args
        assert order_id == "1"
        assert updates["total_amount"] == 45000
        assert updates["final_amount"] == 50000
        assert result["reservations"] == {"v1": 1}

    @pytest.mark.asyncio
    async def test_total_override_becomes_discount(self):
        """Debe guardar un total menor como descuento."""
        result = await self.orchestrator.update_order("1", {"total_amount": 27000})

        changes = result["changes"]
        assert changes["total_amount"] == 27000
        assert changes["discount"] == 3000
        assert changes["final_amount"] == 32000
        assert changes["price_change_type"] == PriceChangeType.DISCOUNT

    @pytest.mark.asyncio
    async def test_invalid_totals_leave_items_and_stock_untouched(self):
        """No debe tocar reservas ni productos si los nuevos totales no son válidos."""
        self.order_repository.get_order.return_value = stored_order(discount=money(20000))

        with pytest.raises(ValidationException):
            await self.orchestrator.update_order("1", {"items": [line(quantity=1)]})

        self.inventory_manager.adjust_for_update.assert_not_awaited()
        self.order_repository.replace_items.assert_not_awaited()
        self.order_repository.update_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_item_write_restores_reservations(self):
        """Debe revertir el ajuste de reservas si falla la escritura de productos."""
        self.order_repository.replace_items.side_effect = DatabaseConnectionException("down")

        with pytest.raises(DatabaseConnectionException):
            await self.orchestrator.update_order("1", {"items": [line(quantity=3)]})

        assert self.inventory_manager.adjust_for_update.await_count == 2
        old_items, new_items = self.inventory_manager.adjust_for_update.await_args.args
        assert [item.quantity for item in old_items] == [3]
        assert [item.quantity for item in new_items] == [2]
        self.order_repository.update_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_total_override_above_subtotal_clears_discount(self):
        """Debe dejar descuento o aumento, nunca los dos, al subir un total con descuento."""
        self.order_repository.get_order.return_value = stored_order(
            total_amount=money(27000), discount=money(3000), final_amount=money(32000)
        )

        result = await self.orchestrator.update_order("1", {"total_amount": 33000})

        changes = result["changes"]
        assert changes["total_amount"] == 33000
        assert changes["discount"] == 0
        assert changes["price_increase"] == 3000
        assert changes["final_amount"] == 38000
        assert changes["price_change_type"] == PriceChangeType.INCREASE

    @pytest.mark.asyncio
    async def test_total_override_back_to_subtotal(self):
        """Debe anular descuento y aumento cuando el total vuelve al subtotal."""
        self.order_repository.get_order.return_value = stored_order(
            total_amount=money(27000), discount=money(3000), final_amount=money(32000)
        )

        result = await self.orchestrator.update_order("1", {"total_amount": 30000})

        changes = result["changes"]
        assert changes["discount"] == 0
        assert changes["price_increase"] == 0
        assert changes["price_change_type"] is None

    @pytest.mark.asyncio
    async def test_update_plain_fields(self):
        """Debe guardar los campos simples sin recalcular totales."""
        result = await self.orchestrator.update_order("1", {"notes": "اتصل قبل التوصيل"})

        assert result["updated_fields"] == ["notes"]
        self.inventory_manager.adjust_for_update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_unknown_field(self):
        """Debe rechazar campos que no se pueden editar."""
        with pytest.raises(ValidationException):
            await self.orchestrator.update_order("1", {"status": OrderStatus.COMPLETED})

    @pytest.mark.asyncio
    async def test_update_after_pickup_is_rejected(self):
        """No debe editar un pedido que el repartidor ya recogió."""
        self.order_repository.get_order.return_value = stored_order(
            delivery_partner=DeliveryPartner.ALWASEET, delivery_status="3", status=OrderStatus.DELIVERY
        )

        with pytest.raises(OrderStateException) as exc_info:
            await self.orchestrator.update_order("1", {"notes": "x"})

        assert exc_info.value.details["operation"] == "update"
        self.order_repository.update_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_locked_order(self):
        """Debe fallar si el pedido está bloqueado por la sincronización."""
        FakeLock.locked = {"1"}
        with pytest.raises(LockAcquisitionException):
            await self.orchestrator.update_order("1", {"notes": "x"})

    @pytest.mark.asyncio
    async def test_delete_releases_reservation(self):
        """Debe liberar la reserva al eliminar un pedido pendiente."""
        result = await self.orchestrator.delete_order("1")

        assert result == {"order_id": "1", "deleted": True, "released": {"v1": 2}}
        self.order_repository.delete_order.assert_awaited_once_with("1")

    @pytest.mark.asyncio
    async def test_delete_partner_order_before_pickup(self):
        """Debe permitir eliminar en los estados 0 y 1 del socio."""
        self.order_repository.get_order.return_value = stored_order(
            delivery_partner=DeliveryPartner.ALWASEET, delivery_status="1"
        )

        result = await self.orchestrator.delete_order("1")

        assert result["deleted"] is True
        self.inventory_manager.release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_delivered_is_rejected(self):
        """No debe eliminar un pedido entregado."""
        self.order_repository.get_order.return_value = stored_order(
            delivery_partner=DeliveryPartner.ALWASEET, delivery_status="4", status=OrderStatus.DELIVERED
        )

        with pytest.raises(OrderStateException):
            await self.orchestrator.delete_order("1")
        self.order_repository.delete_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_unknown_order(self):
        """Debe fallar con un pedido inexistente."""
        self.order_repository.get_order.return_value = None
        with pytest.raises(OrderNotFoundException):
            await self.orchestrator.delete_order("404")
