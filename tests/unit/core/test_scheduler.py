"""Tests unitarios para el scheduler de tareas periódicas."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
import pytz

from app.core import scheduler
from app.utils.error_handler import ProcessingException

BAGHDAD = pytz.timezone("Asia/Baghdad")


def at(day, hour, minute=0):
    return BAGHDAD.localize(datetime(2026, 3, day, hour, minute))


class TestSchedulerDueChecks:
    """Tests para el cálculo de tareas vencidas."""

    def setup_method(self):
        scheduler.reset_scheduler_state()

    def test_job_is_due_without_previous_run(self):
        """Debe ejecutar una tarea que nunca corrió."""
        assert scheduler.is_due("status_sync", 10, at(5, 12)) is True

    def test_job_waits_for_interval(self):
        """Debe esperar el intervalo desde la última ejecución."""
        scheduler._last_runs["status_sync"] = at(5, 12)
        assert scheduler.is_due("status_sync", 10, at(5, 12, 9)) is False
        assert scheduler.is_due("status_sync", 10, at(5, 12, 10)) is True

    def test_rewards_only_first_day_after_hour(self):
        """Debe generar recompensas sólo el día 1 desde la hora configurada."""
        assert scheduler.rewards_due(at(1, 0)) is False
        assert scheduler.rewards_due(at(1, 1)) is True
        assert scheduler.rewards_due(at(2, 1)) is False

    def test_rewards_once_per_month(self):
        """No debe repetir las recompensas del mismo mes."""
        scheduler._last_rewards_month = (2026, 3)
        assert scheduler.rewards_due(at(1, 5)) is False


class TestRunDueJobs:
    """Tests para run_due_jobs."""

    def setup_method(self):
        scheduler.reset_scheduler_state()

    def teardown_method(self):
        scheduler.reset_scheduler_state()

    @pytest.mark.asyncio
    async def test_runs_due_jobs_and_records_results(self):
        """Debe ejecutar las tareas vencidas y guardar su resultado."""
        with (
            patch.object(scheduler, "_run_status_sync", AsyncMock(return_value={"alwaseet": {"updated": 2}})),
            patch.object(scheduler, "_run_reservation_audit", AsyncMock(return_value={"fixed": 0})),
            patch.object(scheduler, "_run_invoice_sync", AsyncMock(return_value={"alwaseet": {"orders_updated": 1}})),
            patch.object(scheduler, "_run_city_rewards", AsyncMock()) as rewards,
        ):
            executed = await scheduler.run_due_jobs(at(5, 12))

        assert executed == ["status_sync", "reservation_audit", "invoice_sync"]
        rewards.assert_not_awaited()
        status = scheduler.get_scheduler_status()
        assert status["last_results"]["status_sync"] == {"alwaseet": {"updated": 2}}
        assert status["last_runs"]["status_sync"] == at(5, 12).isoformat()

    @pytest.mark.asyncio
    async def test_second_pass_skips_recent_jobs(self):
        """No debe repetir tareas antes de su intervalo."""
        with (
            patch.object(scheduler, "_run_status_sync", AsyncMock(return_value={})) as sync,
            patch.object(scheduler, "_run_reservation_audit", AsyncMock(return_value={})),
            patch.object(scheduler, "_run_invoice_sync", AsyncMock(return_value={})),
        ):
            await scheduler.run_due_jobs(at(5, 12))
            executed = await scheduler.run_due_jobs(at(5, 12) + timedelta(minutes=5))

        assert executed == []
        assert sync.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_job_does_not_stop_others(self):
        """Debe registrar el error de una tarea y seguir con las demás."""
        failure = ProcessingException("courier down", service="status_sync", operation="sync")
        with (
            patch.object(scheduler, "_run_status_sync", AsyncMock(side_effect=failure)),
            patch.object(scheduler, "_run_reservation_audit", AsyncMock(return_value={"fixed": 1})),
            patch.object(scheduler, "_run_invoice_sync", AsyncMock(return_value={})),
        ):
            executed = await scheduler.run_due_jobs(at(5, 12))

        assert executed == ["reservation_audit", "invoice_sync"]
        assert "error" in scheduler.get_scheduler_status()["last_results"]["status_sync"]

    @pytest.mark.asyncio
    async def test_monthly_rewards_run_once(self):
        """Debe generar las recompensas del mes una sola vez."""
        with (
            patch.object(scheduler, "_run_status_sync", AsyncMock(return_value={})),
            patch.object(scheduler, "_run_reservation_audit", AsyncMock(return_value={})),
            patch.object(scheduler, "_run_invoice_sync", AsyncMock(return_value={})),
            patch.object(scheduler, "_run_city_rewards", AsyncMock(return_value={"rewards": 3})) as rewards,
        ):
            first = await scheduler.run_due_jobs(at(1, 2))
            second = await scheduler.run_due_jobs(at(1, 4))

        assert "city_rewards" in first
        assert "city_rewards" not in second
        rewards.assert_awaited_once()
        assert scheduler.get_scheduler_status()["last_rewards_month"] == "2026-03"
