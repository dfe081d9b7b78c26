"""
Configuración centralizada de routers para la aplicación FastAPI.

Este módulo se encarga de registrar todos los routers de la API,
configurar endpoints base y organizar las rutas de manera estructurada.
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.responses import JSONResponse

# Importar routers de la API
from app.api.v1.endpoints.cities import router as cities_router
from app.api.v1.endpoints.delivery import router as delivery_router
from app.api.v1.endpoints.loyalty import router as loyalty_router
from app.api.v1.endpoints.orders import router as orders_router
from app.api.v1.endpoints.parsing import router as parsing_router
from app.core.config import get_environment_info, get_settings
from app.core.health import get_health_status
from app.core.scheduler import get_scheduler_status

settings = get_settings()
logger = logging.getLogger(__name__)

API_V1_ROUTERS = (
    (orders_router, "/api/v1/orders", "Orders"),
    (loyalty_router, "/api/v1/loyalty", "Loyalty"),
    (delivery_router, "/api/v1/delivery", "Delivery"),
    (cities_router, "/api/v1/cities", "Cities"),
    (parsing_router, "/api/v1/parsing", "Parsing"),
)


def create_root_endpoints(app: FastAPI) -> None:
    """
    Crea endpoints raíz de la aplicación.

    Args:
        app: Instancia de FastAPI
    """

    @app.get("/", tags=["Root"], summary="API Info")
    async def root():
        """
        Endpoint raíz que proporciona información básica de la API.

        Returns:
            Dict con información de la API
        """
        return {
            "message": settings.APP_NAME,
            "description": "Back-office de pedidos: precios, fidelidad, socios de entrega y contabilidad",
            "version": settings.APP_VERSION,
            "status": "running",
            "documentation": "/docs" if (settings.DEBUG or settings.ENABLE_DOCS) else "disabled",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "endpoints": {"health": "/health", **{tag.lower(): prefix for _, prefix, tag in API_V1_ROUTERS}},
        }

    @app.get("/ping", tags=["Root"], summary="Simple Ping")
    async def ping():
        """
        Endpoint simple para verificar que la API responde.

        Returns:
            Dict con pong y timestamp
        """
        return {"message": "pong", "timestamp": datetime.now(timezone.utc).isoformat()}


def create_health_endpoints(app: FastAPI) -> None:
    """
    Crea endpoints de health check y monitoreo.

    Args:
        app: Instancia de FastAPI
    """

    @app.get("/health", tags=["Health"], summary="Health Check")
    async def health_check():
        """
        Estado de la base de datos y de Redis; 503 si un servicio crítico falla.
        """
        health_status = await get_health_status()
        status_code = 200 if health_status["overall"] else 503

        return JSONResponse(
            status_code=status_code,
            content={
                "status": "healthy" if health_status["overall"] else "unhealthy",
                "version": settings.APP_VERSION,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "uptime": health_status.get("uptime"),
                "services": health_status["services"],
                "environment": settings.ENVIRONMENT,
            },
        )

    @app.get("/health/scheduler", tags=["Health"], summary="Scheduler Status")
    async def scheduler_status():
        return get_scheduler_status()

    @app.get("/info", tags=["Health"], summary="Environment Info")
    async def environment_info():
        return get_environment_info()


def configure_api_v1_routers(app: FastAPI) -> None:
    """
    Registra los routers de la API v1.

    Args:
        app: Instancia de FastAPI
    """
    for router, prefix, tag in API_V1_ROUTERS:
        app.include_router(router, prefix=prefix, tags=[tag])
        logger.debug(f"Router registrado: {prefix}")


def configure_all_routers(app: FastAPI) -> None:
    """
    Configura todos los routers y endpoints de la aplicación.

    Args:
        app: Instancia de FastAPI
    """
    logger.info("🔧 Configurando routers...")

    create_root_endpoints(app)
    create_health_endpoints(app)
    configure_api_v1_routers(app)

    logger.info(f"✅ {len(API_V1_ROUTERS)} routers de API v1 configurados")
