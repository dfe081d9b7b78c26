"""
Motor de scheduling para las tareas periódicas del back-office.

Tareas:
- Sincronización de estados con cada socio de entrega configurado
- Auditoría de reservas de stock
- Recepción de facturas de cada socio
- Recompensas mensuales por ciudad (día 1 de cada mes, hora de Bagdad)
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytz

from app.core.config import get_settings
from app.domain.models import DeliveryPartner
from app.utils.error_handler import AppException

settings = get_settings()
logger = logging.getLogger(__name__)

# Global scheduler state
_scheduler_running = False
_scheduler_task: Optional[asyncio.Task] = None
_last_runs: Dict[str, datetime] = {}
_last_rewards_month: Optional[tuple] = None
_last_results: Dict[str, Any] = {}

LOOP_SLEEP_SECONDS = 60


def _now() -> datetime:
    return datetime.now(pytz.timezone(settings.BUSINESS_TIMEZONE))


def configured_partners() -> List[str]:
    """Socios de entrega con token configurado."""
    return [
        partner
        for partner in (DeliveryPartner.ALWASEET, DeliveryPartner.MODON)
        if settings.get_partner_token(partner)
    ]


def is_due(job: str, interval_minutes: int, now: datetime) -> bool:
    last = _last_runs.get(job)
    return last is None or now - last >= timedelta(minutes=interval_minutes)


def rewards_due(now: datetime) -> bool:
    """Las recompensas se generan una vez, el día 1 a partir de CITY_REWARDS_HOUR."""
    if now.day != 1 or now.hour < settings.CITY_REWARDS_HOUR:
        return False
    return _last_rewards_month != (now.year, now.month)


async def _run_status_sync() -> Dict[str, Any]:
    from app.api.v1.dependencies import get_status_synchronizer

    results = {}
    synchronizer = get_status_synchronizer()
    for partner in configured_partners():
        results[partner] = await synchronizer.sync(partner)
    return results


async def _run_reservation_audit() -> Dict[str, Any]:
    from app.api.v1.dependencies import get_reservation_auditor

    return await get_reservation_auditor().audit_and_fix()


async def _run_invoice_sync() -> Dict[str, Any]:
    from app.api.v1.dependencies import get_invoice_receipt_service

    results = {}
    service = get_invoice_receipt_service()
    for partner in configured_partners():
        results[partner] = await service.sync_received_invoices(partner)
    return results


async def _run_city_rewards(now: datetime) -> Dict[str, Any]:
    from app.api.v1.dependencies import get_city_rewards_service

    return await get_city_rewards_service().generate_monthly_rewards(now)


async def run_due_jobs(now: Optional[datetime] = None) -> List[str]:
    """
    Ejecuta las tareas que ya vencieron.

    Un fallo de negocio (AppException) en una tarea se registra y no impide
    las demás.

    Returns:
        List[str]: Nombres de las tareas ejecutadas
    """
    global _last_rewards_month

    now = now or _now()
    executed = []

    jobs = (
        ("status_sync", settings.STATUS_SYNC_INTERVAL_MINUTES, _run_status_sync),
        ("reservation_audit", settings.RESERVATION_AUDIT_INTERVAL_MINUTES, _run_reservation_audit),
        ("invoice_sync", settings.INVOICE_SYNC_INTERVAL_MINUTES, _run_invoice_sync),
    )
    for name, interval, job in jobs:
        if not is_due(name, interval, now):
            continue
        _last_runs[name] = now
        try:
            _last_results[name] = await job()
            executed.append(name)
            logger.info(f"✅ Scheduled job {name} completed")
        except AppException as e:
            _last_results[name] = {"error": e.to_dict()}
            logger.error(f"❌ Scheduled job {name} failed: {e.message}")

    if rewards_due(now):
        try:
            _last_results["city_rewards"] = await _run_city_rewards(now)
            _last_rewards_month = (now.year, now.month)
            executed.append("city_rewards")
            logger.info(f"🏆 Monthly city rewards generated for {now.year}-{now.month:02d}")
        except AppException as e:
            logger.error(f"❌ Monthly city rewards failed: {e.message}")

    return executed


async def start_scheduler():
    """
    Inicia el loop de tareas programadas.
    """
    global _scheduler_running, _scheduler_task

    if _scheduler_running:
        logger.warning("Scheduler ya está ejecutándose")
        return

    logger.info(
        f"🕒 Iniciando scheduler: estados cada {settings.STATUS_SYNC_INTERVAL_MINUTES} min, "
        f"reservas cada {settings.RESERVATION_AUDIT_INTERVAL_MINUTES} min, socios {configured_partners()}"
    )
    _scheduler_running = True
    _scheduler_task = asyncio.create_task(_scheduler_loop())
    logger.info("✅ Scheduler iniciado correctamente")


async def stop_scheduler():
    """
    Detiene el scheduler.
    """
    global _scheduler_running, _scheduler_task

    if not _scheduler_running:
        logger.info("Scheduler no está ejecutándose")
        return

    logger.info("🛑 Deteniendo scheduler")
    _scheduler_running = False

    if _scheduler_task and not _scheduler_task.done():
        _scheduler_task.cancel()
        try:
            await _scheduler_task
        except asyncio.CancelledError:
            logger.debug("Scheduler task cancelled")

    _scheduler_task = None
    logger.info("✅ Scheduler detenido correctamente")


async def _scheduler_loop():
    """
    Loop principal del scheduler que ejecuta tareas programadas.
    """
    while _scheduler_running:
        try:
            await run_due_jobs()
            await asyncio.sleep(LOOP_SLEEP_SECONDS)

        except asyncio.CancelledError:
            logger.info("Loop del scheduler cancelado")
            break
        except Exception as e:
            logger.error(f"Error en loop del scheduler: {e}")
            # Continuar ejecutándose a pesar del error
            await asyncio.sleep(LOOP_SLEEP_SECONDS)


def get_scheduler_status() -> Dict[str, Any]:
    """
    Obtiene el estado actual del scheduler.

    Returns:
        Dict: Información del estado
    """
    return {
        "running": _scheduler_running,
        "task_active": _scheduler_task is not None and not _scheduler_task.done(),
        "partners": configured_partners(),
        "status_sync_interval_minutes": settings.STATUS_SYNC_INTERVAL_MINUTES,
        "reservation_audit_interval_minutes": settings.RESERVATION_AUDIT_INTERVAL_MINUTES,
        "invoice_sync_interval_minutes": settings.INVOICE_SYNC_INTERVAL_MINUTES,
        "last_runs": {name: value.isoformat() for name, value in _last_runs.items()},
        "last_rewards_month": "%d-%02d" % _last_rewards_month if _last_rewards_month else None,
        "last_results": _last_results,
    }


def reset_scheduler_state() -> None:
    global _last_rewards_month
    _last_runs.clear()
    _last_results.clear()
    _last_rewards_month = None
