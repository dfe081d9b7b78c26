"""
Manejadores de excepciones centralizados para la aplicación FastAPI.

Este módulo define todos los manejadores de excepciones personalizados y globales,
proporcionando respuestas consistentes y logging apropiado para diferentes tipos de errores.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.utils.error_handler import (
    AppException,
    DeliveryPartnerException,
    InsufficientStockException,
    LockAcquisitionException,
    OrderStateException,
    ProcessingException,
    ValidationException,
)

settings = get_settings()
logger = logging.getLogger(__name__)


def _error_content(request: Request, error_type: str, **fields: Any) -> Dict[str, Any]:
    content = {
        "error": True,
        "error_type": error_type,
        **fields,
        "path": str(request.url.path),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request.headers.get("X-Request-ID"),
    }
    # Decimal / datetime en los detalles
    return jsonable_encoder(content)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Manejador para excepciones personalizadas de la aplicación.

    Args:
        request: Request de FastAPI
        exc: Excepción personalizada de la app

    Returns:
        JSONResponse: Respuesta JSON con error formateado
    """
    logger.error(
        f"App Exception: {exc.message} - "
        f"Code: {exc.error_code.value} - "
        f"URL: {request.url} - "
        f"Details: {exc.details}"
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(
            request,
            "application_error",
            error_code=exc.error_code.value,
            message=exc.message,
            details=exc.details if settings.DEBUG else None,
        ),
    )


async def validation_exception_handler(request: Request, exc: ValidationException) -> JSONResponse:
    """
    Manejador para errores de validación de datos.

    Args:
        request: Request de FastAPI
        exc: Excepción de validación

    Returns:
        JSONResponse: Respuesta JSON con detalles de validación
    """
    logger.warning(
        f"Validation Exception: {exc.message} - "
        f"Field: {exc.field} - "
        f"Value: {exc.invalid_value} - "
        f"URL: {request.url}"
    )

    return JSONResponse(
        status_code=422,
        content=_error_content(
            request,
            "validation_error",
            error_code=exc.error_code.value,
            message=exc.message,
            field=exc.field,
            invalid_value=exc.invalid_value if settings.DEBUG else None,
            expected_format=exc.expected_format,
        ),
    )


async def stock_exception_handler(request: Request, exc: InsufficientStockException) -> JSONResponse:
    """Stock insuficiente para una variante."""
    logger.warning(
        f"Insufficient stock: variant {exc.variant_id} - "
        f"requested {exc.requested}, available {exc.available} - URL: {request.url}"
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(
            request,
            "insufficient_stock",
            error_code=exc.error_code.value,
            message=exc.message,
            variant_id=str(exc.variant_id),
            requested=exc.requested,
            available=exc.available,
        ),
    )


async def order_state_exception_handler(request: Request, exc: OrderStateException) -> JSONResponse:
    """Operación no permitida en el estado actual del pedido (o pedido inexistente)."""
    logger.warning(
        f"Order State Exception: {exc.message} - "
        f"Order: {exc.order_id} - "
        f"Status: {exc.current_status} - "
        f"Operation: {exc.operation}"
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(
            request,
            "order_state_error",
            error_code=exc.error_code.value,
            message=exc.message,
            order_id=str(exc.order_id) if exc.order_id is not None else None,
            current_status=exc.current_status,
            operation=exc.operation,
        ),
    )


async def lock_exception_handler(request: Request, exc: LockAcquisitionException) -> JSONResponse:
    logger.warning(f"🔒 Lock Exception: {exc.message} - Key: {exc.lock_key}")

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(request, "order_locked", error_code=exc.error_code.value, message=exc.message),
        headers={"Retry-After": "5"},
    )


async def delivery_partner_exception_handler(request: Request, exc: DeliveryPartnerException) -> JSONResponse:
    """
    Manejador específico para errores de la API de un socio de entrega.

    Args:
        request: Request de FastAPI
        exc: Excepción del socio de entrega

    Returns:
        JSONResponse: Respuesta JSON con información del error del socio
    """
    logger.error(
        f"Delivery Partner Exception: {exc.message} - "
        f"Partner: {exc.partner} - "
        f"API Code: {exc.api_error_code} - "
        f"Rate Limited: {exc.rate_limited} - "
        f"URL: {request.url}"
    )

    # Headers adicionales para rate limiting
    headers = {}
    if exc.rate_limited and exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(
            request,
            "delivery_partner_error",
            error_code=exc.error_code.value,
            message=exc.message,
            partner=exc.partner,
            api_error_code=exc.api_error_code,
            rate_limited=exc.rate_limited,
            retry_after=exc.retry_after,
            endpoint=exc.endpoint,
        ),
        headers=headers,
    )


async def processing_exception_handler(request: Request, exc: ProcessingException) -> JSONResponse:
    """
    Manejador específico para fallas de procesos de negocio.

    Args:
        request: Request de FastAPI
        exc: Excepción de procesamiento

    Returns:
        JSONResponse: Respuesta JSON con información del proceso
    """
    logger.error(
        f"Processing Exception: {exc.message} - "
        f"Service: {exc.service} - "
        f"Operation: {exc.operation} - "
        f"Failed Records: {len(exc.failed_records)} - "
        f"URL: {request.url}"
    )

    if exc.stats:
        logger.info(f"Processing Stats: {exc.stats}")

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(
            request,
            "processing_error",
            error_code=exc.error_code.value,
            message=exc.message,
            service=exc.service,
            operation=exc.operation,
            failed_records=exc.failed_records,
            stats=exc.stats,
            retry_suggested=exc.retry_suggested,
        ),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Manejador para HTTPException estándar de FastAPI.

    Args:
        request: Request de FastAPI
        exc: HTTPException

    Returns:
        JSONResponse: Respuesta JSON estandarizada
    """
    logger.warning(f"HTTP Exception: {exc.status_code} - {exc.detail} - URL: {request.url}")

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(request, "http_error", status_code=exc.status_code, message=exc.detail),
    )


async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Manejador para HTTPException de Starlette (nivel más bajo).
    """
    logger.warning(f"Starlette HTTP Exception: {exc.status_code} - {exc.detail} - URL: {request.url}")

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(request, "http_error", status_code=exc.status_code, message=exc.detail),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Manejador global para excepciones no capturadas.

    Args:
        request: Request de FastAPI
        exc: Excepción no manejada

    Returns:
        JSONResponse: Respuesta JSON de error interno
    """
    # Log completo del error con traceback
    logger.error(
        f"Unhandled Exception: {str(exc)} - "
        f"Type: {type(exc).__name__} - "
        f"URL: {request.url} - "
        f"Traceback: {traceback.format_exc()}"
    )

    # Respuesta genérica (sin exponer detalles internos)
    error_message = "Internal server error occurred"
    if settings.DEBUG:
        error_message = f"{type(exc).__name__}: {str(exc)}"

    return JSONResponse(
        status_code=500,
        content=_error_content(
            request,
            "internal_server_error",
            message=error_message,
            traceback=traceback.format_exc() if settings.DEBUG else None,
        ),
    )


def configure_exception_handlers(app: FastAPI) -> None:
    """
    Configura todos los manejadores de excepciones de la aplicación.

    Args:
        app: Instancia de FastAPI
    """
    logger.info("🔧 Configurando manejadores de excepciones...")

    # Manejadores específicos (orden de especificidad)
    app.add_exception_handler(ValidationException, validation_exception_handler)
    app.add_exception_handler(InsufficientStockException, stock_exception_handler)
    app.add_exception_handler(OrderStateException, order_state_exception_handler)
    app.add_exception_handler(LockAcquisitionException, lock_exception_handler)
    app.add_exception_handler(DeliveryPartnerException, delivery_partner_exception_handler)
    app.add_exception_handler(ProcessingException, processing_exception_handler)
    app.add_exception_handler(AppException, app_exception_handler)

    # Manejadores HTTP estándar
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, starlette_http_exception_handler)

    # Manejador global (debe ser el último)
    app.add_exception_handler(Exception, global_exception_handler)

    logger.info("✅ Manejadores de excepciones configurados correctamente")
