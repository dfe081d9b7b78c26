"""
Configuración centralizada de la aplicación.

Este módulo maneja todas las variables de entorno y configuraciones
de la aplicación usando Pydantic Settings para validación automática.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Configuración de la aplicación usando Pydantic Settings.

    Todas las configuraciones se cargan desde variables de entorno
    con valores por defecto apropiados para desarrollo.
    """

    # === CONFIGURACIÓN BÁSICA DE LA APP ===
    APP_NAME: str = "Orders Back-Office"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = Field(default="development", env="ENV")
    DEBUG: bool = Field(default=True, env="DEBUG")

    # === CONFIGURACIÓN DEL SERVIDOR ===
    HOST: str = Field(default="0.0.0.0", env="HOST")
    PORT: int = Field(default=8080, env="PORT")
    WORKERS: int = Field(default=1, env="WORKERS")
    LOG_LEVEL: str = Field(default="INFO", env="LOG_LEVEL")

    # === CONFIGURACIÓN DE SEGURIDAD ===
    ALLOWED_HOSTS: Optional[List[str]] = Field(default=None, env="ALLOWED_HOSTS")

    # === CONFIGURACIÓN DE BASE DE DATOS (POSTGRES) ===
    DB_HOST: str = Field(default="localhost", env="DB_HOST")
    DB_PORT: int = Field(default=5432, env="DB_PORT")
    DB_NAME: str = Field(default="postgres", env="DB_NAME")
    DB_USER: str = Field(default="postgres", env="DB_USER")
    DB_PASSWORD: str = Field(default="postgres", env="DB_PASSWORD")
    DB_CONNECTION_TIMEOUT: int = Field(default=30, env="DB_CONNECTION_TIMEOUT")
    DB_MAX_POOL_SIZE: int = Field(default=10, env="DB_MAX_POOL_SIZE")

    # === CONFIGURACIÓN DE REDIS ===
    REDIS_URL: Optional[str] = Field(default=None, env="REDIS_URL")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, env="REDIS_SOCKET_TIMEOUT")
    ORDER_LOCK_TIMEOUT_SECONDS: int = Field(default=120, env="ORDER_LOCK_TIMEOUT_SECONDS")
    ORDER_LOCK_MAX_RETRIES: int = Field(default=30, env="ORDER_LOCK_MAX_RETRIES")

    # === CONFIGURACIÓN DE SOCIOS DE ENTREGA ===
    ALWASEET_API_URL: str = Field(default="https://api.alwaseet-iq.net/v1/merchant", env="ALWASEET_API_URL")
    ALWASEET_TOKEN: Optional[str] = Field(default=None, env="ALWASEET_TOKEN")
    MODON_API_URL: str = Field(default="https://mcht.modon-express.net/v1/merchant", env="MODON_API_URL")
    MODON_TOKEN: Optional[str] = Field(default=None, env="MODON_TOKEN")
    DELIVERY_REQUEST_TIMEOUT: int = Field(default=30, env="DELIVERY_REQUEST_TIMEOUT")
    DELIVERY_BULK_SIZE: int = Field(default=25, env="DELIVERY_BULK_SIZE")
    DELIVERY_MIN_REQUEST_INTERVAL: float = Field(default=0.3, env="DELIVERY_MIN_REQUEST_INTERVAL")

    # === REGLAS DE NEGOCIO ===
    CURRENCY_CODE: str = Field(default="IQD", env="CURRENCY_CODE")
    CURRENCY_SYMBOL: str = Field(default="د.ع", env="CURRENCY_SYMBOL")
    DEFAULT_DELIVERY_FEE: int = Field(default=5000, env="DEFAULT_DELIVERY_FEE")
    MAIN_CASH_SOURCE_NAME: str = Field(default="القاصة الرئيسية", env="MAIN_CASH_SOURCE_NAME")
    LOYALTY_POINTS_PER_ORDER: int = Field(default=250, env="LOYALTY_POINTS_PER_ORDER")
    DISCOUNT_ROUNDING_STEP: int = Field(default=500, env="DISCOUNT_ROUNDING_STEP")
    BUSINESS_TIMEZONE: str = Field(default="Asia/Baghdad", env="BUSINESS_TIMEZONE")
    CITY_REWARD_DISCOUNT_PERCENT: int = Field(default=5, env="CITY_REWARD_DISCOUNT_PERCENT")

    # === CONFIGURACIÓN DE TAREAS PROGRAMADAS ===
    ENABLE_SCHEDULED_SYNC: bool = Field(default=False, env="ENABLE_SCHEDULED_SYNC")
    STATUS_SYNC_INTERVAL_MINUTES: int = Field(default=10, env="STATUS_SYNC_INTERVAL_MINUTES")
    RESERVATION_AUDIT_INTERVAL_MINUTES: int = Field(default=60, env="RESERVATION_AUDIT_INTERVAL_MINUTES")
    INVOICE_SYNC_INTERVAL_MINUTES: int = Field(default=360, env="INVOICE_SYNC_INTERVAL_MINUTES")
    CITY_REWARDS_HOUR: int = Field(default=1, env="CITY_REWARDS_HOUR")

    # === CONFIGURACIÓN DE LOGGING ===
    LOG_FILE_PATH: Optional[str] = Field(default="logs/app.log", env="LOG_FILE_PATH")
    LOG_MAX_SIZE_MB: int = Field(default=10, env="LOG_MAX_SIZE_MB")
    LOG_BACKUP_COUNT: int = Field(default=5, env="LOG_BACKUP_COUNT")
    LOG_FORMAT: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s", env="LOG_FORMAT")

    # === CONFIGURACIÓN DE DOCUMENTACIÓN ===
    ENABLE_DOCS: bool = Field(default=True, env="ENABLE_DOCS")

    # === CONFIGURACIÓN DE RETRIES ===
    MAX_RETRIES: int = Field(default=3, env="MAX_RETRIES")
    RETRY_DELAY_SECONDS: int = Field(default=1, env="RETRY_DELAY_SECONDS")
    RETRY_BACKOFF_FACTOR: float = Field(default=2.0, env="RETRY_BACKOFF_FACTOR")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "allow",
    }

    @field_validator("ALLOWED_HOSTS", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, v):
        """Parsea ALLOWED_HOSTS como lista separada por comas."""
        if isinstance(v, str):
            return [host.strip() for host in v.split(",") if host.strip()]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Valida que el nivel de log sea válido."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL debe ser uno de: {valid_levels}")
        return v.upper()

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Valida que el entorno sea válido."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"ENVIRONMENT debe ser uno de: {valid_envs}")
        return v.lower()

    @field_validator("PORT")
    @classmethod
    def validate_port(cls, v):
        """Valida que el puerto esté en rango válido."""
        if not 1 <= v <= 65535:
            raise ValueError("PORT debe estar entre 1 y 65535")
        return v

    @field_validator("DEFAULT_DELIVERY_FEE")
    @classmethod
    def validate_delivery_fee(cls, v):
        """La tarifa de entrega por defecto no puede ser negativa."""
        if v < 0:
            raise ValueError("DEFAULT_DELIVERY_FEE no puede ser negativo")
        return v

    @field_validator(
        "DISCOUNT_ROUNDING_STEP",
        "DELIVERY_BULK_SIZE",
        "LOYALTY_POINTS_PER_ORDER",
        "STATUS_SYNC_INTERVAL_MINUTES",
        "RESERVATION_AUDIT_INTERVAL_MINUTES",
        "INVOICE_SYNC_INTERVAL_MINUTES",
    )
    @classmethod
    def validate_positive(cls, v):
        """Valida valores que deben ser mayores a cero."""
        if v <= 0:
            raise ValueError("El valor debe ser mayor a 0")
        return v

    @field_validator("ALWASEET_API_URL", "MODON_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v):
        """Normaliza las URLs base de los socios de entrega."""
        if not v.startswith(("http://", "https://")):
            v = f"https://{v}"
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Verifica si está en entorno de producción."""
        return self.ENVIRONMENT == "production"

    @property
    def database_url(self) -> str:
        """String de conexión asíncrona (asyncpg) para Postgres."""
        return (
            f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    def get_partner_api_url(self, partner: str) -> str:
        """
        Obtiene la URL base del socio de entrega.

        Args:
            partner: 'alwaseet' o 'modon'

        Returns:
            str: URL base de la API del comerciante
        """
        if partner == "modon":
            return self.MODON_API_URL
        return self.ALWASEET_API_URL

    def get_partner_token(self, partner: str) -> Optional[str]:
        """Obtiene el token configurado para el socio de entrega."""
        if partner == "modon":
            return self.MODON_TOKEN
        return self.ALWASEET_TOKEN


@lru_cache()
def get_settings() -> Settings:
    """
    Obtiene instancia singleton de configuración.

    Usa LRU cache para evitar recrear la configuración
    múltiples veces durante la ejecución.

    Returns:
        Settings: Instancia de configuración
    """
    return Settings()


def validate_required_settings() -> bool:
    """
    Valida que todas las configuraciones requeridas estén presentes.

    Returns:
        bool: True si todas las configuraciones están presentes

    Raises:
        ValueError: Si alguna configuración requerida falta
    """
    settings = get_settings()

    required_fields = ["DB_HOST", "DB_NAME", "DB_USER", "DB_PASSWORD"]
    if settings.is_production:
        required_fields.append("ALWASEET_TOKEN")

    missing_fields = []
    for field in required_fields:
        value = getattr(settings, field, None)
        if not value or (isinstance(value, str) and not value.strip()):
            missing_fields.append(field)

    if missing_fields:
        raise ValueError(f"Configuraciones requeridas faltantes: {missing_fields}")

    return True


def get_environment_info() -> dict:
    """
    Obtiene información del entorno actual.

    Returns:
        dict: Información del entorno
    """
    settings = get_settings()

    return {
        "app_name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "debug": settings.DEBUG,
        "is_production": settings.is_production,
        "host": settings.HOST,
        "port": settings.PORT,
        "log_level": settings.LOG_LEVEL,
        "currency": settings.CURRENCY_CODE,
        "features": {
            "redis": bool(settings.REDIS_URL),
            "alwaseet": bool(settings.ALWASEET_TOKEN),
            "modon": bool(settings.MODON_TOKEN),
            "docs": settings.ENABLE_DOCS,
            "scheduled_sync": settings.ENABLE_SCHEDULED_SYNC,
        },
    }
