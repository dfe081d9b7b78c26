"""Tests unitarios para las recompensas mensuales por ciudad."""

import random
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytz

from app.services.rewards import CityRewardsService, month_bounds
from app.services.rewards.city_rewards import BENEFIT_DISCOUNT_WITH_FREE_DELIVERY, BENEFIT_FREE_DELIVERY

BAGHDAD = pytz.timezone("Asia/Baghdad")


class TestMonthBounds:
    """Tests para los límites del mes en hora de Bagdad."""

    def test_utc_late_night_belongs_to_next_month(self):
        """Debe usar el calendario de Bagdad (UTC+3)."""
        year, month, start, end = month_bounds(pytz.utc.localize(datetime(2024, 1, 31, 22, 0)))

        assert (year, month) == (2024, 2)
        assert start == BAGHDAD.localize(datetime(2024, 2, 1))
        assert end == BAGHDAD.localize(datetime(2024, 3, 1))

    def test_december_rolls_over(self):
        """Debe cerrar diciembre en enero del año siguiente."""
        _, _, _, end = month_bounds(BAGHDAD.localize(datetime(2024, 12, 10)))
        assert end == BAGHDAD.localize(datetime(2025, 1, 1))


class TestCityRewardsService:
    """Tests para la generación de recompensas."""

    def setup_method(self):
        self.order_repository = MagicMock()
        self.reward_repository = MagicMock()
        self.reward_repository.get_benefits = AsyncMock(return_value=[])
        self.reward_repository.insert_benefit = AsyncMock()
        self.reward_repository.get_random_discount = AsyncMock(return_value=None)
        self.reward_repository.insert_random_discount = AsyncMock()
        self.service = CityRewardsService(self.order_repository, self.reward_repository, rng=random.Random(7))
        self.now = BAGHDAD.localize(datetime(2024, 3, 1, 2, 0))

    @pytest.mark.asyncio
    async def test_top_city_gets_benefits(self):
        """Debe crear los dos beneficios de la ciudad ganadora y un descuento aleatorio en otra."""
        self.order_repository.count_orders_by_city = AsyncMock(
            return_value=[
                {"city_name": "بغداد", "orders_count": 120, "total_amount": 3000000},
                {"city_name": "البصرة", "orders_count": 40, "total_amount": 900000},
            ]
        )

        result = await self.service.generate_monthly_rewards(self.now)

        assert result["success"]
        assert result["city"] == "بغداد"
        assert result["benefits_created"] == 2
        assert result["random_discount_city"] == "البصرة"
        benefit_types = [call.args[0]["benefit_type"] for call in self.reward_repository.insert_benefit.await_args_list]
        assert benefit_types == [BENEFIT_FREE_DELIVERY, BENEFIT_DISCOUNT_WITH_FREE_DELIVERY]
        self.reward_repository.insert_random_discount.assert_awaited_once_with("البصرة", 2024, 3, 5)

    @pytest.mark.asyncio
    async def test_idempotent_in_same_month(self):
        """Debe no duplicar beneficios ni descuento aleatorio existentes."""
        self.order_repository.count_orders_by_city = AsyncMock(
            return_value=[{"city_name": "بغداد", "orders_count": 5, "total_amount": 100000}]
        )
        self.reward_repository.get_benefits = AsyncMock(return_value=[{"id": 1}])
        self.reward_repository.get_random_discount = AsyncMock(return_value={"city_name": "كربلاء"})

        result = await self.service.generate_monthly_rewards(self.now)

        assert result["benefits_created"] == 0
        assert result["random_discount_city"] == "كربلاء"
        self.reward_repository.insert_benefit.assert_not_awaited()
        self.reward_repository.insert_random_discount.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_single_city_has_no_random_discount(self):
        """Debe omitir el descuento aleatorio si solo hay una ciudad."""
        self.order_repository.count_orders_by_city = AsyncMock(
            return_value=[{"city_name": "بغداد", "orders_count": 5, "total_amount": 100000}]
        )

        result = await self.service.generate_monthly_rewards(self.now)

        assert result["random_discount_city"] is None

    @pytest.mark.asyncio
    async def test_no_orders(self):
        """Debe retornar sin recompensas cuando no hay pedidos."""
        self.order_repository.count_orders_by_city = AsyncMock(return_value=[])

        result = await self.service.generate_monthly_rewards(self.now)

        assert result == {"success": False, "year": 2024, "month": 3, "message": "no_orders"}
