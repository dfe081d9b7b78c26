"""
Sistema de health checks para monitoreo de servicios.

Este módulo proporciona funciones para verificar el estado de la base de datos
y de Redis (locks de pedidos), con un cache corto para el endpoint rápido.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Variable global para tracking de uptime
_app_start_time = datetime.now(timezone.utc)

# Cache global para health checks
_health_cache: Dict[str, Any] = {}
_cache_timestamp: Dict[str, datetime] = {}

HEALTH_CHECK_CACHE_TTL = 30
HEALTH_CHECK_TIMEOUT = 3.0


async def check_database_health() -> bool:
    """
    Verificación de conectividad de la base de datos.

    Returns:
        bool: True si la base de datos está disponible
    """
    from app.db.connection import get_db_connection

    health_info = await get_db_connection().health_check()
    return health_info.get("test_passed", False) and health_info.get("connection_initialized", False)


async def check_redis_health() -> bool:
    """
    Verifica la conectividad con Redis.

    Returns:
        bool: True si Redis está disponible
    """
    if not settings.REDIS_URL:
        return False

    from app.core.redis_client import test_redis_connection

    return await test_redis_connection()


def get_service_dependencies() -> List[str]:
    """Servicios críticos: sin Redis no hay locks de pedidos para la sincronización."""
    critical_services = ["database"]
    if settings.REDIS_URL:
        critical_services.append("redis")
    return critical_services


async def run_health_check_with_timeout(service_name: str, check_func, timeout: float) -> Dict[str, Any]:
    """
    Ejecuta una verificación de salud individual con timeout específico.

    Args:
        service_name: Nombre del servicio
        check_func: Función de verificación
        timeout: Timeout en segundos

    Returns:
        Dict: Resultado de la verificación
    """
    start_time = time.time()

    try:
        result = await asyncio.wait_for(check_func(), timeout=timeout)
        latency_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy" if result else "unhealthy",
            "latency_ms": round(latency_ms, 2),
        }

    except asyncio.TimeoutError:
        logger.warning(f"Health check timeout for {service_name} after {timeout}s")
        return {"status": "timeout", "error": f"Health check timeout after {timeout}s", "latency_ms": None}

    except Exception as e:
        logger.error(f"Health check failed for {service_name}: {e}")
        return {"status": "unhealthy", "error": str(e), "latency_ms": round((time.time() - start_time) * 1000, 2)}


async def get_health_status() -> Dict[str, Any]:
    """
    Obtiene el estado de salud de todos los servicios (con cache corto).

    Returns:
        Dict: ``overall``, ``services`` y ``uptime``
    """
    now = datetime.now(timezone.utc)
    cached = _health_cache.get("health_status")
    if cached and (now - _cache_timestamp["health_status"]).total_seconds() < HEALTH_CHECK_CACHE_TTL:
        logger.debug("Returning cached health status")
        return cached

    checks = {"database": check_database_health}
    if settings.REDIS_URL:
        checks["redis"] = check_redis_health

    results = await asyncio.gather(
        *(run_health_check_with_timeout(name, func, HEALTH_CHECK_TIMEOUT) for name, func in checks.items())
    )
    services = dict(zip(checks, results))
    overall = all(services[name]["status"] == "healthy" for name in get_service_dependencies())

    health_response = {
        "overall": overall,
        "services": services,
        "uptime": get_uptime_info(),
        "timestamp": now.isoformat(),
    }

    _health_cache["health_status"] = health_response
    _cache_timestamp["health_status"] = now
    return health_response


def get_uptime_info() -> Dict[str, Any]:
    """
    Obtiene información de uptime de la aplicación.

    Returns:
        Dict: Información de uptime
    """
    current_time = datetime.now(timezone.utc)
    uptime_delta = current_time - _app_start_time

    return {
        "start_time": _app_start_time.isoformat(),
        "uptime_seconds": int(uptime_delta.total_seconds()),
        "uptime_human": format_uptime(uptime_delta),
    }


def format_uptime(uptime_delta: timedelta) -> str:
    """
    Formatea el uptime en formato legible.

    Args:
        uptime_delta: Delta de tiempo de uptime

    Returns:
        str: Uptime formateado
    """
    days = uptime_delta.days
    hours, remainder = divmod(uptime_delta.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds or not parts:
        parts.append(f"{seconds}s")

    return " ".join(parts)


def reset_health_cache() -> None:
    _health_cache.clear()
    _cache_timestamp.clear()
