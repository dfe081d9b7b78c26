"""Tests unitarios para la política de reservas de stock."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain.models import DeliveryPartner, ItemDirection, OrderDomain, OrderItemDomain, OrderStatus, OrderType
from app.domain.value_objects.money import Money
from app.services.delivery.reservation_policy import (
    ReservationAuditor,
    should_keep_reservation,
    should_release_stock,
)
from app.utils.error_handler import DatabaseConnectionException


def make_order(status=OrderStatus.DELIVERY, partner=DeliveryPartner.ALWASEET, delivery_status=None, **kwargs):
    items = kwargs.pop(
        "items",
        [OrderItemDomain(product_id="p1", variant_id="v1", quantity=2, unit_price=Money(Decimal("10000")))],
    )
    return OrderDomain(
        id=kwargs.pop("id", "1"),
        customer_name="علي",
        customer_phone="07701234567",
        status=status,
        delivery_partner=partner,
        delivery_status=delivery_status,
        items=items,
        **kwargs,
    )


class TestShouldReleaseStock:
    """Tests para la decisión de liberar stock."""

    def test_alwaseet(self):
        """Debe liberar solo en los estados 4 y 17 de الوسيط."""
        assert should_release_stock(OrderStatus.DELIVERY, "4", DeliveryPartner.ALWASEET)
        assert should_release_stock(OrderStatus.RETURNED, 17, DeliveryPartner.ALWASEET)
        assert not should_release_stock(OrderStatus.RETURNED, "16", DeliveryPartner.ALWASEET)

    def test_modon(self):
        """Debe usar la tabla de مدن."""
        assert should_release_stock(OrderStatus.DELIVERY, "4", DeliveryPartner.MODON)
        assert should_release_stock(OrderStatus.RETURNED, "7", DeliveryPartner.MODON)
        assert not should_release_stock(OrderStatus.RETURNED, "5", DeliveryPartner.MODON)

    def test_local(self):
        """Debe usar el estado local para pedidos sin socio."""
        assert should_release_stock(OrderStatus.COMPLETED, None, DeliveryPartner.LOCAL)
        assert not should_release_stock(OrderStatus.PENDING, None, None)

    def test_other_partner_free_text(self):
        """Debe reconocer textos de entrega de otros socios."""
        assert should_release_stock(OrderStatus.DELIVERY, "تم التسليم", "other")
        assert not should_release_stock(OrderStatus.DELIVERY, "قيد التوصيل", "other")

    def test_keep_reservation(self):
        """Debe mantener la reserva en estados abiertos sin liberación."""
        assert should_keep_reservation(OrderStatus.SHIPPED, "2", DeliveryPartner.ALWASEET)
        assert not should_keep_reservation(OrderStatus.DELIVERY, "4", DeliveryPartner.ALWASEET)
        assert not should_keep_reservation(OrderStatus.CANCELLED, None, DeliveryPartner.LOCAL)


class TestReservationAuditor:
    """Tests para la auditoría de reservas."""

    def setup_method(self):
        self.order_repository = MagicMock()
        self.inventory_repository = MagicMock()
        self.inventory_repository.release_reservation = AsyncMock()
        self.auditor = ReservationAuditor(self.order_repository, self.inventory_repository)

    @pytest.mark.asyncio
    async def test_releases_delivered_orders(self):
        """Debe liberar la reserva de pedidos ya entregados."""
        delivered = make_order(delivery_status="4", id="1")
        in_transit = make_order(status=OrderStatus.SHIPPED, delivery_status="2", id="2")

        report = await self.auditor.audit_and_fix([delivered, in_transit])

        assert report == {"total": 2, "processed": 2, "released": 1, "reserved": 1, "errors": 0}
        self.inventory_repository.release_reservation.assert_awaited_once_with("v1", 2)

    @pytest.mark.asyncio
    async def test_loads_reserving_orders_by_default(self):
        """Debe consultar los pedidos con reserva cuando no se pasan pedidos."""
        self.order_repository.get_reserving_orders = AsyncMock(return_value=[])

        report = await self.auditor.audit_and_fix()

        assert report["total"] == 0
        self.order_repository.get_reserving_orders.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_return_orders_never_release(self):
        """Debe ignorar los artículos de pedidos de devolución."""
        order = make_order(delivery_status="17", order_type=OrderType.RETURN)

        released = await self.auditor.release_order_items(order)

        assert released == 0
        self.inventory_repository.release_reservation.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_replacement_releases_only_sent_items(self):
        """Debe liberar solo los artículos enviados al cliente."""
        items = [
            OrderItemDomain(
                product_id="p1",
                variant_id="old",
                quantity=1,
                unit_price=Money(Decimal("10000")),
                item_direction=ItemDirection.OUTGOING,
            ),
            OrderItemDomain(
                product_id="p2",
                variant_id="new",
                quantity=1,
                unit_price=Money(Decimal("12000")),
                item_direction=ItemDirection.INCOMING,
            ),
        ]
        order = make_order(order_type=OrderType.REPLACEMENT, items=items)

        released = await self.auditor.release_order_items(order)

        assert released == 1
        self.inventory_repository.release_reservation.assert_awaited_once_with("new", 1)

    @pytest.mark.asyncio
    async def test_errors_are_counted(self):
        """Debe contar errores sin detener la auditoría."""
        self.inventory_repository.release_reservation = AsyncMock(side_effect=DatabaseConnectionException("db down"))
        orders = [make_order(delivery_status="4", id="1"), make_order(delivery_status="4", id="2")]

        report = await self.auditor.audit_and_fix(orders)

        assert report["errors"] == 2
        assert report["processed"] == 0
