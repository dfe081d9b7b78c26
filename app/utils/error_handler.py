"""
Sistema de manejo de errores personalizado.

Este módulo define todas las excepciones personalizadas de la aplicación
con su código, severidad y detalles serializables.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """
    Códigos de error estandarizados para la aplicación.
    """

    # Errores generales
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Errores de conexión
    DATABASE_CONNECTION_FAILED = "DATABASE_CONNECTION_FAILED"
    DATABASE_QUERY_FAILED = "DATABASE_QUERY_FAILED"
    REDIS_CONNECTION_FAILED = "REDIS_CONNECTION_FAILED"
    DELIVERY_PARTNER_ERROR = "DELIVERY_PARTNER_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Errores de negocio
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    INVALID_ORDER_STATE = "INVALID_ORDER_STATE"
    INVALID_ORDER_DATA = "INVALID_ORDER_DATA"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    ORDER_LOCKED = "ORDER_LOCKED"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"

    # Errores de procesamiento
    PROCESSING_FAILED = "PROCESSING_FAILED"


class ErrorSeverity(Enum):
    """
    Niveles de severidad para errores.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AppException(Exception):
    """
    Excepción base para todas las excepciones personalizadas de la aplicación.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        is_retryable: bool = False,
        is_critical: bool = False,
    ):
        """
        Inicializa la excepción.

        Args:
            message: Mensaje de error
            error_code: Código de error estandarizado
            details: Información adicional del error
            status_code: Código HTTP asociado
            severity: Severidad del error
            is_retryable: Si la operación puede reintentarse
            is_critical: Si requiere alerta inmediata
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.severity = severity
        self.is_retryable = is_retryable
        self.is_critical = is_critical
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convierte la excepción a diccionario.

        Returns:
            Dict: Representación de la excepción
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "details": self.details,
            "status_code": self.status_code,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
            "is_critical": self.is_critical,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"


class ValidationException(AppException):
    """
    Excepción para errores de validación de datos.
    """

    def __init__(
        self,
        message: str,
        field: str,
        invalid_value: Any = None,
        expected_format: Optional[str] = None,
        **kwargs,
    ):
        """
        Inicializa la excepción de validación.

        Args:
            message: Mensaje de error
            field: Campo que falló la validación
            invalid_value: Valor que causó el error
            expected_format: Formato esperado
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            status_code=422,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.field = field
        self.invalid_value = invalid_value
        self.expected_format = expected_format

        self.details.update(
            {
                "field": field,
                "invalid_value": str(invalid_value) if invalid_value is not None else None,
                "expected_format": expected_format,
            }
        )


class DatabaseConnectionException(AppException):
    """
    Excepción para errores de conexión o consulta con la base de datos.
    """

    def __init__(
        self,
        message: str,
        db_host: Optional[str] = None,
        connection_type: str = "database",
        is_retryable: bool = True,
        **kwargs,
    ):
        super().__init__(
            message=message,
            error_code=ErrorCode.DATABASE_CONNECTION_FAILED,
            status_code=503,
            severity=ErrorSeverity.HIGH,
            is_retryable=is_retryable,
            is_critical=True,
            **kwargs,
        )
        self.db_host = db_host
        self.connection_type = connection_type

        self.details.update({"db_host": db_host, "connection_type": connection_type})


class DeliveryPartnerException(AppException):
    """
    Excepción para errores de la API de un socio de entrega (Al-Waseet, MODON).
    """

    def __init__(
        self,
        message: str,
        partner: str = "alwaseet",
        endpoint: Optional[str] = None,
        api_error_code: Optional[str] = None,
        http_status: Optional[int] = None,
        rate_limited: bool = False,
        retry_after: Optional[int] = None,
        **kwargs,
    ):
        """
        Inicializa la excepción del socio de entrega.

        Args:
            message: Mensaje de error
            partner: Socio de entrega involucrado
            endpoint: Endpoint que falló
            api_error_code: Valor de errNum devuelto por la API
            http_status: Código HTTP de la respuesta
            rate_limited: Si es por rate limiting
            retry_after: Segundos para reintentar
        """
        error_code = ErrorCode.RATE_LIMIT_EXCEEDED if rate_limited else ErrorCode.DELIVERY_PARTNER_ERROR
        severity = ErrorSeverity.LOW if rate_limited else ErrorSeverity.MEDIUM
        if http_status and http_status >= 500:
            severity = ErrorSeverity.HIGH

        super().__init__(
            message=message,
            error_code=error_code,
            status_code=429 if rate_limited else 502,
            severity=severity,
            is_retryable=rate_limited or bool(http_status and http_status >= 500),
            **kwargs,
        )

        self.partner = partner
        self.endpoint = endpoint
        self.api_error_code = api_error_code
        self.http_status = http_status
        self.rate_limited = rate_limited
        self.retry_after = retry_after

        self.details.update(
            {
                "partner": partner,
                "endpoint": endpoint,
                "api_error_code": api_error_code,
                "http_status": http_status,
                "rate_limited": rate_limited,
                "retry_after": retry_after,
            }
        )


class InsufficientStockException(AppException):
    """
    Excepción cuando la cantidad solicitada supera el stock disponible.
    """

    def __init__(self, message: str, variant_id: Any, requested: int, available: int, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.INSUFFICIENT_STOCK,
            status_code=409,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.variant_id = variant_id
        self.requested = requested
        self.available = available

        self.details.update({"variant_id": str(variant_id), "requested": requested, "available": available})


class OrderStateException(AppException):
    """
    Excepción cuando una operación no está permitida en el estado actual del pedido.
    """

    def __init__(
        self,
        message: str,
        order_id: Any = None,
        current_status: Optional[str] = None,
        operation: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.INVALID_ORDER_STATE,
        status_code: int = 409,
        **kwargs,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status_code,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.order_id = order_id
        self.current_status = current_status
        self.operation = operation

        self.details.update(
            {
                "order_id": str(order_id) if order_id is not None else None,
                "current_status": current_status,
                "operation": operation,
            }
        )


class OrderNotFoundException(OrderStateException):
    """Pedido inexistente."""

    def __init__(self, order_id: Any, **kwargs):
        super().__init__(
            message=f"Order {order_id} not found",
            order_id=order_id,
            error_code=ErrorCode.ORDER_NOT_FOUND,
            status_code=404,
            **kwargs,
        )


class LockAcquisitionException(AppException):
    """
    Excepción cuando no se puede adquirir el lock de un pedido.
    """

    def __init__(self, message: str, lock_key: str, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.ORDER_LOCKED,
            status_code=423,
            severity=ErrorSeverity.LOW,
            is_retryable=True,
            **kwargs,
        )
        self.lock_key = lock_key
        self.details.update({"lock_key": lock_key})


class ProcessingException(AppException):
    """
    Excepción para fallas en procesos de negocio (sincronizaciones, conciliaciones).
    """

    def __init__(
        self,
        message: str,
        service: str,
        operation: str,
        failed_records: Optional[List[Dict]] = None,
        stats: Optional[Dict[str, Any]] = None,
        retry_suggested: bool = True,
        **kwargs,
    ):
        """
        Inicializa la excepción de procesamiento.

        Args:
            message: Mensaje de error
            service: Servicio involucrado (orders, delivery, finance)
            operation: Operación que falló
            failed_records: Registros que fallaron
            stats: Estadísticas del proceso
            retry_suggested: Si se sugiere reintentar
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.PROCESSING_FAILED,
            status_code=500,
            severity=ErrorSeverity.HIGH,
            is_retryable=retry_suggested,
            **kwargs,
        )

        self.service = service
        self.operation = operation
        self.failed_records = failed_records or []
        self.stats = stats or {}
        self.retry_suggested = retry_suggested

        self.details.update(
            {
                "service": service,
                "operation": operation,
                "failed_count": len(self.failed_records),
                "stats": stats,
                "retry_suggested": retry_suggested,
            }
        )

