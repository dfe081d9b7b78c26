"""Tests unitarios para la validación de pedidos y el vínculo con el pedido original."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain.models import ItemDirection, OrderDomain, OrderItemDomain, OrderStatus, OrderType
from app.domain.value_objects.money import Money
from app.services.orders.calculators import OrderTotals
from app.services.orders.factories import OrderFactory
from app.services.orders.linkers import ReturnLinker
from app.services.orders.validators import OrderValidator
from app.utils.error_handler import ValidationException


def valid_request(**overrides):
    request = {
        "customer_name": "حسين",
        "customer_phone": "07701234567",
        "items": [{"product_id": "p1", "variant_id": "v1", "quantity": 2, "unit_price": "15000"}],
    }
    request.update(overrides)
    return request


class TestOrderValidator:
    """Tests para OrderValidator."""

    def setup_method(self):
        self.validator = OrderValidator()

    def test_valid_request_is_returned(self):
        """Debe devolver la misma solicitud si es válida."""
        request = valid_request()
        assert self.validator.validate(request) is request

    @pytest.mark.parametrize("field", ["customer_name", "customer_phone", "items"])
    def test_missing_required_field(self, field):
        """Debe exigir nombre, teléfono e items."""
        with pytest.raises(ValidationException) as exc_info:
            self.validator.validate(valid_request(**{field: "" if field != "items" else []}))
        assert exc_info.value.field == field

    def test_invalid_type_and_partner(self):
        """Debe rechazar tipos de pedido y socios desconocidos."""
        with pytest.raises(ValidationException) as exc_info:
            self.validator.validate(valid_request(order_type="gift"))
        assert exc_info.value.field == "order_type"

        with pytest.raises(ValidationException) as exc_info:
            self.validator.validate(valid_request(delivery_partner="dhl"))
        assert exc_info.value.field == "delivery_partner"

    def test_invalid_phones(self):
        """Debe validar el teléfono principal y el secundario."""
        with pytest.raises(ValidationException):
            self.validator.validate(valid_request(customer_phone="12345"))

        with pytest.raises(ValidationException) as exc_info:
            self.validator.validate(valid_request(customer_phone2="0612345678"))
        assert exc_info.value.field == "customer_phone2"

    @pytest.mark.parametrize("quantity", [0, -1, "2", True, 1.5])
    def test_invalid_quantity(self, quantity):
        """Debe exigir una cantidad entera positiva."""
        items = [{"product_id": "p1", "variant_id": "v1", "quantity": quantity, "unit_price": 1000}]
        with pytest.raises(ValidationException) as exc_info:
            self.validator.validate(valid_request(items=items))
        assert exc_info.value.field == "items[0].quantity"

    def test_invalid_prices_and_ids(self):
        """Debe rechazar precios inválidos o negativos y líneas sin variante."""
        for price in ("abc", -500):
            items = [{"product_id": "p1", "variant_id": "v1", "quantity": 1, "unit_price": price}]
            with pytest.raises(ValidationException):
                self.validator.validate(valid_request(items=items))

        with pytest.raises(ValidationException) as exc_info:
            self.validator.validate(valid_request(items=[{"product_id": "p1", "quantity": 1}]))
        assert exc_info.value.field == "items[0].variant_id"

    def test_replacement_needs_both_directions(self):
        """Debe exigir líneas recogidas y enviadas en un استبدال."""
        outgoing = {"product_id": "p1", "variant_id": "v1", "item_direction": ItemDirection.OUTGOING}
        incoming = {"product_id": "p2", "variant_id": "v2", "item_direction": ItemDirection.INCOMING}

        with pytest.raises(ValidationException):
            self.validator.validate(valid_request(order_type=OrderType.REPLACEMENT, items=[outgoing]))

        request = valid_request(order_type=OrderType.REPLACEMENT, items=[outgoing, incoming])
        assert self.validator.validate(request) is request


class TestOrderFactory:
    """Tests para OrderFactory."""

    def test_create_order_from_request(self):
        """Debe crear un pedido pendiente con los totales calculados."""
        request = valid_request(customer_name="  حسين  ", notes=None)
        items = OrderFactory.create_items(request["items"])
        totals = OrderTotals(
            subtotal=Money(Decimal("30000")),
            discount=Money(Decimal("0")),
            delivery_fee=Money(Decimal("5000")),
            total_amount=Money(Decimal("30000")),
            final_amount=Money(Decimal("35000")),
        )

        order = OrderFactory.create_order(request, items, totals, customer_city="بغداد")

        assert order.customer_name == "حسين"
        assert order.status == OrderStatus.PENDING
        assert order.order_type == OrderType.REGULAR
        assert order.sales_amount == order.total_amount
        assert order.refund_amount.is_zero
        assert order.customer_city == "بغداد"
        assert order.notes == ""
        assert items[0].quantity == 2


def make_order(order_id=None, phone="07701234567"):
    return OrderDomain(
        id=order_id,
        customer_name="مريم",
        customer_phone=phone,
        order_type=OrderType.RETURN,
        items=[OrderItemDomain(product_id="p1", variant_id="v1", quantity=1, unit_price=Money(Decimal("9000")))],
    )


class TestReturnLinker:
    """Tests para ReturnLinker."""

    def setup_method(self):
        self.repository = MagicMock()
        self.repository.find_latest_delivered_by_phone = AsyncMock(
            return_value={"id": 40, "order_number": "ORD-40"}
        )
        self.repository.update_order = AsyncMock()
        self.repository.get_order = AsyncMock()
        self.linker = ReturnLinker(self.repository)

    @pytest.mark.asyncio
    async def test_links_latest_delivered_order(self):
        """Debe vincular con el último pedido entregado del mismo teléfono."""
        order = make_order(order_id="55", phone="+9647701234567")

        result = await self.linker.link_return_to_original(order)

        assert result == {"linked": True, "original_order_id": "40", "original_order_number": "ORD-40"}
        assert order.original_order_id == "40"
        self.repository.find_latest_delivered_by_phone.assert_awaited_once_with("7701234567", exclude_order_id="55")
        self.repository.update_order.assert_awaited_once_with("55", {"original_order_id": "40"})

    @pytest.mark.asyncio
    async def test_link_without_persisting(self):
        """No debe escribir nada con persist=False."""
        result = await self.linker.link_return_to_original(make_order(order_id="55"), persist=False)

        assert result["linked"] is True
        self.repository.update_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_delivered_order(self):
        """Debe informar si el cliente no tiene pedidos entregados."""
        self.repository.find_latest_delivered_by_phone.return_value = None

        result = await self.linker.link_return_to_original(make_order())

        assert result["linked"] is False
        assert result["error"] == "لم يتم العثور على طلب أصلي مُسلّم"

    @pytest.mark.asyncio
    async def test_invalid_phone(self):
        """Debe rechazar el vínculo sin dígitos de teléfono."""
        order = make_order(phone="---")

        result = await self.linker.link_return_to_original(order)

        assert result == {"linked": False, "error": "رقم هاتف غير صحيح"}
        self.repository.find_latest_delivered_by_phone.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_replacement_pair(self):
        """Debe asignar el mismo par a ambos pedidos y guardar solo los que tienen id."""
        first, second = make_order(order_id="1"), make_order()

        pair_id = await self.linker.link_replacement_pair(first, second)

        assert first.replacement_pair_id == second.replacement_pair_id == pair_id
        self.repository.update_order.assert_awaited_once_with("1", {"replacement_pair_id": pair_id})

    @pytest.mark.asyncio
    async def test_get_original_order(self):
        """Debe cargar el pedido original sólo si existe el vínculo."""
        order = make_order()
        assert await self.linker.get_original_order(order) is None

        order.original_order_id = "40"
        await self.linker.get_original_order(order)
        self.repository.get_order.assert_awaited_once_with("40")
