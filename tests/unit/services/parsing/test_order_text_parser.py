"""Tests unitarios para el parser de pedidos en texto libre."""

from decimal import Decimal

import pytest

from app.domain.models import OrderType
from app.services.parsing import detect_order_type, parse_order_text, parse_product_string
from app.services.parsing.order_text_parser import extract_phone, parse_amount
from app.utils.error_handler import ValidationException


class TestHelpers:
    """Tests para las funciones auxiliares."""

    def test_detect_order_type(self):
        """Debe detectar el tipo por hashtag."""
        assert detect_order_type("برشلونة #استبدال ريال") == OrderType.REPLACEMENT
        assert detect_order_type("برشلونة #ترجيع") == OrderType.RETURN
        assert detect_order_type("برشلونة ازرق M") == OrderType.REGULAR

    def test_parse_product_string(self):
        """Debe separar nombre, color y talla."""
        product = parse_product_string("برشلونة ازرق M")
        assert (product.name, product.color, product.size) == ("برشلونة", "ازرق", "M")
        assert parse_product_string("برشلونة").color is None

    def test_parse_amount(self):
        """Debe extraer números con separadores y dígitos árabes."""
        assert parse_amount("15,000 د.ع") == Decimal("15000")
        assert parse_amount("١٠٠٠٠") == Decimal("10000")
        assert parse_amount("-5000") == Decimal("-5000")
        assert parse_amount("-5000", allow_negative=False) == Decimal("5000")
        assert parse_amount("بدون") == Decimal("0")

    def test_extract_phone(self):
        """Debe normalizar teléfonos locales e internacionales."""
        assert extract_phone("0770 123 4567") == "07701234567"
        assert extract_phone("+9647701234567") == "07701234567"
        assert extract_phone("009647801234567") == "07801234567"
        assert extract_phone("غير معروف") == "غير معروف"


class TestParseOrderText:
    """Tests para el análisis de pedidos completos."""

    def test_regular_order_with_total(self):
        """Debe leer productos y el precio total de la última línea."""
        text = "أحمد علي\nبغداد - المنصور - قرب الجامع\n07701234567\nبرشلونة ازرق M\nريال ابيض L\n45,000 د.ع"

        parsed = parse_order_text(text)

        assert parsed.order_type == OrderType.REGULAR
        assert parsed.customer.name == "أحمد علي"
        assert parsed.customer.city == "بغداد"
        assert parsed.customer.address == "المنصور - قرب الجامع"
        assert parsed.customer.phone_is_valid
        assert [product.name for product in parsed.products] == ["برشلونة", "ريال"]
        assert parsed.total_price == Decimal("45000")

    def test_regular_order_single_product_line_is_product(self):
        """Debe tratar una única línea de producto como producto aunque sea numérica."""
        parsed = parse_order_text("أحمد\nبغداد\n07701234567\n10")
        assert parsed.total_price is None
        assert len(parsed.products) == 1

    def test_replacement_with_delivery_fee(self):
        """Debe leer la línea 5 como envío cuando está en [0, 10000]."""
        text = "أحمد\nالبصرة - العشار\n07801234567\nبرشلونة ازرق M #استبدال برشلونة ابيض S\n3000"

        parsed = parse_order_text(text)

        assert parsed.order_type == OrderType.REPLACEMENT
        assert parsed.outgoing_product.color == "ازرق"
        assert parsed.incoming_product.size == "S"
        assert parsed.delivery_fee == Decimal("3000")
        assert parsed.price_adjustment == Decimal("0")

    def test_replacement_with_price_difference(self):
        """Debe leer la diferencia de precio y el envío en la línea 6."""
        text = "أحمد\nالبصرة\n07801234567\nبرشلونة ازرق M #استبدال ريال ابيض S\n-5000\n6000"

        parsed = parse_order_text(text)

        assert parsed.price_adjustment == Decimal("-5000")
        assert parsed.delivery_fee == Decimal("6000")

    def test_replacement_default_fee(self):
        """Debe usar la tarifa por defecto sin línea de envío."""
        parsed = parse_order_text("أحمد\nبغداد\n07701234567\nبرشلونة #تبديل ريال")
        assert parsed.delivery_fee == Decimal("5000")

    def test_return_order(self):
        """Debe leer el producto devuelto y el reembolso."""
        text = "أحمد\nبغداد - الكرادة\n07701234567\nبرشلونة ازرق M #ترجيع\n15000"

        parsed = parse_order_text(text)

        assert parsed.order_type == OrderType.RETURN
        assert parsed.outgoing_product.name == "برشلونة"
        assert parsed.refund_amount == Decimal("15000")
        assert parsed.to_dict()["products"] == [{"name": "برشلونة", "color": "ازرق", "size": "M"}]

    def test_too_few_lines_raises(self):
        """Debe lanzar ValidationException con menos de 4 líneas."""
        with pytest.raises(ValidationException):
            parse_order_text("أحمد\nبغداد\n07701234567")
