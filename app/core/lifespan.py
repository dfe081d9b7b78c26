"""
Gestión del ciclo de vida de la aplicación FastAPI.

Este módulo maneja los eventos de startup y shutdown de la aplicación,
incluyendo inicialización de la base de datos, Redis y el scheduler.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import get_settings, validate_required_settings
from app.core.logging_config import setup_logging
from app.utils.error_handler import DatabaseConnectionException

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gestión del ciclo de vida de la aplicación.
    Maneja eventos de startup y shutdown de manera ordenada.

    Args:
        app: Instancia de FastAPI
    """
    # === STARTUP ===
    setup_logging()
    logger.info(f"🚀 Iniciando {settings.APP_NAME}...")

    try:
        # 1. Verificar configuración
        await startup_verify_configuration()

        # 2. Conexión a la base de datos (crítica)
        await startup_initialize_database()

        # 3. Redis para locks de pedidos
        await startup_verify_redis()

        # 4. Tareas programadas
        await startup_configure_scheduled_tasks()

        logger.info("🎉 Aplicación iniciada correctamente")

    except (ValueError, DatabaseConnectionException) as e:
        logger.error(f"❌ Error durante el startup: {e}")
        await shutdown_close_connections()
        sys.exit(1)

    # === YIELD (aplicación corriendo) ===
    yield

    # === SHUTDOWN ===
    logger.info(f"🛑 Cerrando {settings.APP_NAME}...")

    # 1. Detener tareas programadas
    await shutdown_stop_scheduled_tasks()

    # 2. Cerrar conexiones
    await shutdown_close_connections()

    logger.info("👋 Aplicación cerrada correctamente")


# === FUNCIONES DE STARTUP ===


async def startup_verify_configuration():
    """Verifica que la configuración sea válida."""
    validate_required_settings()

    missing_partners = [name for name in ("alwaseet", "modon") if not settings.get_partner_token(name)]
    if missing_partners:
        logger.warning(f"⚠️ Sin token para {missing_partners}: la sincronización con esos socios está deshabilitada")

    logger.info("✅ Configuración verificada")


async def startup_initialize_database():
    """Inicializa el pool de conexiones de Postgres."""
    from app.db import get_db_connection, initialize_database

    conn_db = get_db_connection()
    if not conn_db.is_initialized():
        logger.info("Inicializando conexión a base de datos...")
        await initialize_database()

    health_info = await conn_db.health_check()
    logger.info(f"✅ Base de datos conectada: {health_info['response_time_ms']}ms")


async def startup_verify_redis():
    """Verifica Redis; sin Redis los pedidos no se pueden bloquear durante la sincronización."""
    if not settings.REDIS_URL:
        logger.warning("⚠️ REDIS_URL no configurado: la sincronización de estados no podrá bloquear pedidos")
        return

    from app.core.redis_client import test_redis_connection

    if await test_redis_connection():
        logger.info("✅ Conexión a Redis verificada")
    else:
        logger.warning("⚠️ Conexión a Redis falló")


async def startup_configure_scheduled_tasks():
    """Configura tareas programadas."""
    if not settings.ENABLE_SCHEDULED_SYNC:
        logger.info("ℹ️ Tareas programadas deshabilitadas")
        return

    from app.core.scheduler import start_scheduler

    await start_scheduler()


# === FUNCIONES DE SHUTDOWN ===


async def shutdown_stop_scheduled_tasks():
    """Detiene tareas programadas."""
    if settings.ENABLE_SCHEDULED_SYNC:
        from app.core.scheduler import stop_scheduler

        await stop_scheduler()


async def shutdown_close_connections():
    """Cierra conexiones de manera limpia."""
    from app.db import close_database

    try:
        await close_database()
        logger.info("✅ Conexión a base de datos cerrada")
    except DatabaseConnectionException as e:
        logger.error(f"Error cerrando base de datos: {e.message}")

    if settings.REDIS_URL:
        from app.core.redis_client import close_redis_connection

        await close_redis_connection()

