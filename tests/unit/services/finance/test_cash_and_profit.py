"""Tests unitarios para CashLedger, ProfitAdjuster y EmployeeProfitCalculator."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain.models import CashSource, ExpenseType, MovementType, OrderItemDomain, ProfitRecord
from app.domain.value_objects.money import Money
from app.services.finance import CashLedger, EmployeeProfitCalculator, ProfitAdjuster
from app.utils.error_handler import ProcessingException, ValidationException


def money(value):
    return Money(Decimal(str(value)))


def make_profit(revenue, employee, profit, cost=0):
    return ProfitRecord(
        id="profit-1",
        order_id="order-1",
        employee_id="emp-1",
        total_revenue=money(revenue),
        total_cost=money(cost),
        employee_profit=money(employee),
        profit_amount=money(profit),
    )


class TestCashLedger:
    """Tests para los movimientos de caja."""

    def setup_method(self):
        self.repository = MagicMock()
        self.repository.apply_movement = AsyncMock(return_value=True)
        self.ledger = CashLedger(self.repository)
        self.source = CashSource(id="main", name="القاصة الرئيسية", current_balance=money(100000))

    @pytest.mark.asyncio
    async def test_records_out_movement(self):
        """Debe registrar la salida con los saldos antes y después."""
        movement = await self.ledger.record_movement(
            self.source, MovementType.OUT, money(15000), "دفع إرجاع", reference_type="return_order"
        )

        assert movement.balance_before.amount == Decimal("100000")
        assert movement.balance_after.amount == Decimal("85000")
        assert self.source.current_balance.amount == Decimal("85000")
        self.repository.apply_movement.assert_awaited_once_with(movement)

    @pytest.mark.asyncio
    async def test_rejects_non_positive_amount(self):
        """Debe rechazar montos no positivos."""
        with pytest.raises(ValidationException):
            await self.ledger.record_movement(self.source, MovementType.IN, money(0), "x", "order")

    @pytest.mark.asyncio
    async def test_rejects_unknown_type(self):
        """Debe rechazar tipos de movimiento desconocidos."""
        with pytest.raises(ValidationException):
            await self.ledger.record_movement(self.source, "transfer", money(100), "x", "order")

    @pytest.mark.asyncio
    async def test_retries_with_fresh_balance(self):
        """Debe releer el saldo cuando otro movimiento llegó primero."""
        self.repository.apply_movement = AsyncMock(side_effect=[False, True])
        self.repository.get_source = AsyncMock(return_value={"id": "main", "current_balance": "120000"})

        movement = await self.ledger.record_movement(self.source, MovementType.IN, money(5000), "بيع", "order")

        assert movement.balance_before.amount == Decimal("120000")
        assert movement.balance_after.amount == Decimal("125000")

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self):
        """Debe lanzar ProcessingException si el saldo sigue cambiando."""
        self.repository.apply_movement = AsyncMock(return_value=False)
        self.repository.get_source = AsyncMock(return_value={"id": "main", "current_balance": "100000"})

        with pytest.raises(ProcessingException):
            await self.ledger.record_movement(self.source, MovementType.IN, money(5000), "بيع", "order")

        assert self.repository.apply_movement.await_count == CashLedger.MAX_BALANCE_RETRIES

    @pytest.mark.asyncio
    async def test_main_source(self):
        """Debe retornar None si la caja principal no existe."""
        self.repository.get_source_by_name = AsyncMock(return_value=None)
        assert await self.ledger.get_main_source() is None

        self.repository.get_source_by_name = AsyncMock(
            return_value={"id": 1, "name": "القاصة الرئيسية", "current_balance": 5000}
        )
        source = await self.ledger.get_main_source()
        assert source.id == "1"
        assert source.current_balance.amount == Decimal("5000")


class TestProfitAdjuster:
    """Tests para el ajuste de ganancias por reembolso."""

    def setup_method(self):
        self.repository = MagicMock()
        self.repository.update_profit = AsyncMock()
        self.repository.insert_entry = AsyncMock(return_value="entry-1")
        self.adjuster = ProfitAdjuster(self.repository)

    @pytest.mark.asyncio
    async def test_proportional_reduction(self):
        """Debe reducir la ganancia del empleado en proporción a su parte."""
        self.repository.get_profit_by_order = AsyncMock(return_value=make_profit(30000, 6000, 10000))

        adjustment = await self.adjuster.adjust_for_refund("order-1", money(6000))

        assert adjustment.applied
        assert adjustment.updated.total_revenue.amount == Decimal("24000")
        assert adjustment.updated.profit_amount.amount == Decimal("4000")
        # 6000 * (6000 / 30000) = 1200
        assert adjustment.updated.employee_profit.amount == Decimal("4800")
        assert adjustment.previous.total_revenue.amount == Decimal("30000")
        assert adjustment.loss is None
        self.repository.insert_entry.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refund_above_revenue_books_loss(self):
        """Debe registrar la pérdida y dejar la ganancia en cero."""
        self.repository.get_profit_by_order = AsyncMock(return_value=make_profit(5000, 1000, 2000))

        adjustment = await self.adjuster.adjust_for_refund("order-1", money(-8000))

        assert adjustment.loss.amount == Decimal("3000")
        assert adjustment.updated.total_revenue.is_zero
        assert adjustment.updated.employee_profit.is_zero
        entry = self.repository.insert_entry.await_args.args[0]
        assert entry.expense_type == ExpenseType.LOSS
        assert entry.amount.amount == Decimal("3000")

    @pytest.mark.asyncio
    async def test_without_profit_record(self):
        """Debe retornar un ajuste no aplicado si no hay ganancia registrada."""
        self.repository.get_profit_by_order = AsyncMock(return_value=None)

        adjustment = await self.adjuster.adjust_for_refund("order-1", money(1000))

        assert not adjustment.applied
        assert adjustment.to_dict()["updated"] is None
        self.repository.update_profit.assert_not_awaited()


class TestEmployeeProfitCalculator:
    """Tests para la ganancia del empleado."""

    def make_item(self, product_id, price, cost, quantity=1):
        return OrderItemDomain(
            product_id=product_id,
            variant_id=f"{product_id}-v",
            quantity=quantity,
            unit_price=money(price),
            cost_price=money(cost),
        )

    def test_rule_precedence(self):
        """Debe aplicar regla de producto, luego de categoría y luego el margen."""
        item = self.make_item("p1", 20000, 12000, quantity=2)
        product_rules = {"p1": money(1500)}
        category_rules = {"c1": money(1000)}

        assert EmployeeProfitCalculator.profit_for_item(item, product_rules, category_rules, "c1").amount == 3000
        assert EmployeeProfitCalculator.profit_for_item(item, {}, category_rules, "c1").amount == 2000
        assert EmployeeProfitCalculator.profit_for_item(item, {}, {}, None).amount == 16000

    def test_negative_margin_is_zero(self):
        """Debe limitar el margen negativo a cero."""
        item = self.make_item("p1", 10000, 12000)
        assert EmployeeProfitCalculator.profit_for_item(item, {}, {}).is_zero

    @pytest.mark.asyncio
    async def test_calculate_with_rules(self):
        """Debe cargar las reglas del empleado y sumar por artículo."""
        repository = MagicMock()
        repository.get_employee_profit_rules = AsyncMock(
            return_value=[
                {"rule_type": "product", "target_id": "p1", "profit_amount": "2000"},
                {"rule_type": "category", "target_id": 7, "profit_amount": "1000"},
            ]
        )
        repository.get_product_categories = AsyncMock(return_value={"p2": "7"})
        calculator = EmployeeProfitCalculator(repository)

        total = await calculator.calculate(
            "emp-1", [self.make_item("p1", 20000, 10000), self.make_item("p2", 15000, 9000, quantity=3)]
        )

        assert total.amount == Decimal("5000")
        repository.get_product_categories.assert_awaited_once_with(["p1", "p2"])

    @pytest.mark.asyncio
    async def test_calculate_without_employee(self):
        """Debe retornar cero sin empleado."""
        calculator = EmployeeProfitCalculator(MagicMock())
        total = await calculator.calculate(None, [self.make_item("p1", 20000, 10000)])
        assert total.is_zero
