"""
Orders Back-Office - FastAPI Application Entry Point

Servicio de pedidos para la tienda (Irak, dinares IQD): captura de pedidos
normales, de استبدال y ارجاع, descuentos de fidelidad, sincronización con los
socios de entrega (Al-Waseet, MODON) y contabilidad de devoluciones.

Este archivo actúa como el punto de entrada principal de la aplicación,
orquestando todos los componentes de manera modular y mantenible.
"""

import logging

import uvicorn
from fastapi import FastAPI

# Importaciones de configuración
from app.core.config import get_settings
from app.core.exception_handlers import configure_exception_handlers
from app.core.lifespan import lifespan

# Importaciones de módulos de configuración
from app.core.middleware import configure_all_middleware
from app.core.routers import configure_all_routers

# Configuración
settings = get_settings()
logger = logging.getLogger(__name__)


def create_application() -> FastAPI:
    """
    Factory para crear y configurar la aplicación FastAPI.

    Esta función sigue el patrón Factory para crear una instancia
    completamente configurada de FastAPI, aplicando todas las
    configuraciones de manera ordenada y modular.

    Returns:
        FastAPI: Instancia configurada de la aplicación
    """
    logger.info("🏗️ Creando aplicación FastAPI...")

    app = FastAPI(
        title=settings.APP_NAME,
        description="Back-office de pedidos: precios, fidelidad, socios de entrega y contabilidad",
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url="/docs" if (settings.DEBUG or settings.ENABLE_DOCS) else None,
        redoc_url="/redoc" if (settings.DEBUG or settings.ENABLE_DOCS) else None,
        openapi_url="/openapi.json" if (settings.DEBUG or settings.ENABLE_DOCS) else None,
    )

    # El orden es importante para el correcto funcionamiento

    # 1. Middleware (orden inverso de ejecución)
    configure_all_middleware(app)

    # 2. Manejadores de excepciones
    configure_exception_handlers(app)

    # 3. Routers y endpoints
    configure_all_routers(app)

    logger.info("✅ Aplicación FastAPI creada y configurada")
    return app


# Instancia principal que usa el servidor ASGI
app = create_application()


if __name__ == "__main__":
    """
    Ejecutar la aplicación directamente para desarrollo.

    Para producción se recomienda usar:
    uvicorn app.main:app --host 0.0.0.0 --port 8080 --workers 4
    """
    logger.info("🚀 Iniciando aplicación desde main.py...")

    uvicorn_config = {
        "app": "app.main:app",
        "host": settings.HOST,
        "port": settings.PORT,
        "reload": settings.DEBUG,
        "log_level": settings.LOG_LEVEL.lower(),
        "access_log": True,
        "workers": 1 if settings.DEBUG else settings.WORKERS,
    }
    if settings.DEBUG:
        uvicorn_config["reload_dirs"] = ["app"]

    logger.info(f"🔧 Configuración Uvicorn: {uvicorn_config}")
    uvicorn.run(**uvicorn_config)
