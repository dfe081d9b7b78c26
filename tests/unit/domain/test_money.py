"""Tests unitarios para el value object Money."""

from decimal import Decimal

import pytest

from app.domain.value_objects.money import Money


class TestMoneyNormalization:
    """Tests para la normalización de montos en dinares enteros."""

    def test_rounds_to_whole_dinars(self):
        """Debe redondear a dinares enteros (half up)."""
        assert Money(Decimal("1500.5")).amount == Decimal("1501")
        assert Money(Decimal("1500.4")).amount == Decimal("1500")

    def test_accepts_non_decimal_amounts(self):
        """Debe convertir int y str a Decimal."""
        assert Money(2500).amount == Decimal("2500")
        assert Money("3000").amount == Decimal("3000")

    def test_invalid_currency_raises(self):
        """Debe rechazar códigos de moneda inválidos."""
        with pytest.raises(ValueError):
            Money(Decimal("10"), currency="DINAR")

    def test_negative_amounts_allowed(self):
        """Debe permitir montos negativos (reembolsos y diferencias de precio)."""
        refund = Money(Decimal("-5000"))
        assert refund.is_negative
        assert refund.max_zero().is_zero


class TestMoneyArithmetic:
    """Tests para operaciones aritméticas."""

    def test_add_and_subtract(self):
        """Debe sumar y restar montos de la misma moneda."""
        total = Money(Decimal("15000")) + Money(Decimal("5000"))
        assert total.amount == Decimal("20000")
        assert (total - Money(Decimal("25000"))).amount == Decimal("-5000")

    def test_different_currencies_raise(self):
        """Debe fallar al operar monedas distintas."""
        with pytest.raises(ValueError):
            Money(Decimal("1")) + Money(Decimal("1"), currency="USD")

    def test_multiply_by_quantity(self):
        """Debe multiplicar por una cantidad entera en ambos sentidos."""
        assert (Money(Decimal("12000")) * 3).amount == Decimal("36000")
        assert (2 * Money(Decimal("12000"))).amount == Decimal("24000")

    def test_multiply_by_bool_raises(self):
        """Debe rechazar multiplicar por booleanos."""
        with pytest.raises(TypeError):
            Money(Decimal("100")) * True

    def test_comparisons(self):
        """Debe comparar montos."""
        assert Money(Decimal("100")) < Money(Decimal("200"))
        assert Money(Decimal("200")) >= Money(Decimal("200"))
        assert -Money(Decimal("300")) == Money(Decimal("-300"))
        assert abs(Money(Decimal("-300"))) == Money(Decimal("300"))


class TestMoneyHelpers:
    """Tests para helpers de creación, redondeo y formato."""

    def test_round_to_step(self):
        """Debe redondear al múltiplo de 500 más cercano."""
        assert Money(Decimal("7300")).round_to_step(500).amount == Decimal("7500")
        assert Money(Decimal("7200")).round_to_step(500).amount == Decimal("7000")
        assert Money(Decimal("7250")).round_to_step(500).amount == Decimal("7500")

    def test_round_to_invalid_step_raises(self):
        """Debe rechazar pasos no positivos."""
        with pytest.raises(ValueError):
            Money(Decimal("100")).round_to_step(0)

    def test_from_value(self):
        """Debe crear Money desde valores crudos de la base de datos."""
        assert Money.from_value(None).is_zero
        assert Money.from_value("").is_zero
        assert Money.from_value("25000.00").amount == Decimal("25000")
        existing = Money(Decimal("10"))
        assert Money.from_value(existing) is existing

    def test_format(self):
        """Debe formatear con separador de miles y símbolo del dinar."""
        assert Money(Decimal("5000")).format() == "5,000 د.ع"
        assert Money(Decimal("1250000")).format() == "1,250,000 د.ع"
