# app/db/connection.py
"""
Clase ConnDB para gestión exclusiva de conexiones a la base de datos Postgres.

Esta clase maneja únicamente la conexión, configuración del pool,
y ciclo de vida de las conexiones. El esquema pertenece al backend
alojado; aquí solo se consultan tablas existentes.
"""

import logging
import time
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import get_settings
from app.utils.error_handler import DatabaseConnectionException

settings = get_settings()
logger = logging.getLogger(__name__)


class ConnDB:
    """
    Clase para gestión exclusiva de conexiones a la base de datos.

    Implementa el patrón Singleton para garantizar una única
    instancia de conexión y maneja todo el ciclo de vida de las conexiones.
    """

    _instance = None
    _initialized = False

    def __new__(cls):
        """Implementa patrón Singleton."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self.engine: Optional[AsyncEngine] = None
            self.session_factory: Optional[async_sessionmaker] = None
            self.connection_string = settings.database_url
            self._connection_tested = False
            ConnDB._initialized = True
            logger.info("ConnDB instance created")

    async def initialize(self):
        """
        Inicializa el engine de base de datos y el pool de conexiones.

        Raises:
            DatabaseConnectionException: Si falla la inicialización
        """
        try:
            if self.engine is not None:
                logger.info("Database connection already initialized")
                return

            logger.info("Initializing database connection...")

            self.engine = create_async_engine(
                self.connection_string,
                pool_size=settings.DB_MAX_POOL_SIZE,
                max_overflow=10,
                pool_pre_ping=True,
                pool_recycle=3600,
                pool_timeout=settings.DB_CONNECTION_TIMEOUT,
                echo=settings.DEBUG and settings.LOG_LEVEL == "DEBUG",
                connect_args={
                    "timeout": settings.DB_CONNECTION_TIMEOUT,
                    "server_settings": {"application_name": settings.APP_NAME},
                },
            )

            self.session_factory = async_sessionmaker(
                self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=True
            )

            await self._test_connection()

            logger.info("Database connection initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database connection: {e}")
            await self._cleanup_failed_initialization()
            raise DatabaseConnectionException(
                message=f"Failed to initialize database connection: {str(e)}",
                db_host=settings.DB_HOST,
                connection_type="initialization",
            ) from e

    async def _test_connection(self):
        """
        Prueba la conexión y el acceso a la tabla de pedidos.

        Raises:
            DatabaseConnectionException: Si la prueba de conexión falla
        """
        try:
            logger.info("Testing database connection...")

            async with self.session_factory() as session:
                result = await session.execute(text("SELECT 1 AS test_connection"))
                if result.scalar() != 1:
                    raise DatabaseConnectionException(
                        message="Connection test returned unexpected value",
                        db_host=settings.DB_HOST,
                        connection_type="test",
                    )

                result = await session.execute(text("SELECT COUNT(*) FROM orders"))
                logger.info(f"Connection test successful - {result.scalar()} orders visible")

                self._connection_tested = True

        except DatabaseConnectionException:
            raise
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            raise DatabaseConnectionException(
                message=f"Database connection test failed: {str(e)}",
                db_host=settings.DB_HOST,
                connection_type="test",
            ) from e

    async def _cleanup_failed_initialization(self):
        """Limpia recursos en caso de fallo de inicialización."""
        try:
            if self.engine:
                await self.engine.dispose()
        except Exception as e:
            logger.error(f"Error during cleanup of failed initialization: {e}")
        finally:
            self.engine = None
            self.session_factory = None
            self._connection_tested = False

    def get_session(self) -> AsyncSession:
        """
        Obtiene una nueva sesión de base de datos.

        Raises:
            DatabaseConnectionException: Si no hay conexión inicializada
        """
        if not self.is_initialized():
            raise DatabaseConnectionException(
                message="Database connection not initialized. Call initialize() first.",
                db_host=settings.DB_HOST,
                connection_type="session_creation",
            )

        return self.session_factory()

    def is_initialized(self) -> bool:
        return self.engine is not None and self.session_factory is not None and self._connection_tested

    async def test_connection(self) -> bool:
        """
        Prueba la conexión a la base de datos de forma no destructiva.

        Returns:
            bool: True si la conexión funciona correctamente
        """
        try:
            if not self.is_initialized():
                return False

            async with self.get_session() as session:
                result = await session.execute(text("SELECT 1"))
                return result.scalar() == 1

        except Exception as e:
            logger.error(f"Connection test failed: {e}")
            return False

    async def close(self):
        """Cierra la conexión y limpia todos los recursos."""
        try:
            logger.info("Closing database connection...")

            if self.engine:
                await self.engine.dispose()
                logger.info("Database engine disposed")

            self.engine = None
            self.session_factory = None
            self._connection_tested = False

            logger.info("Database connection closed successfully")

        except Exception as e:
            logger.error(f"Error closing database connection: {e}")
            raise DatabaseConnectionException(
                message=f"Error closing database connection: {str(e)}",
                db_host=settings.DB_HOST,
                connection_type="close",
            ) from e

    def get_engine_info(self) -> dict:
        """Información sobre el engine y el pool de conexiones."""
        if not self.engine:
            return {"status": "not_initialized"}

        pool = self.engine.pool

        return {
            "status": "initialized",
            "pool_size": getattr(pool, "size", lambda: 0)(),
            "checked_in": getattr(pool, "checkedin", lambda: 0)(),
            "checked_out": getattr(pool, "checkedout", lambda: 0)(),
            "overflow": getattr(pool, "overflow", lambda: 0)(),
            "is_tested": self._connection_tested,
        }

    async def health_check(self) -> dict:
        """
        Realiza un health check completo de la conexión.

        Returns:
            dict: Estado de salud de la conexión
        """
        health_info = {
            "connection_initialized": self.is_initialized(),
            "engine_info": self.get_engine_info(),
            "test_passed": False,
            "response_time_ms": None,
            "error": None,
        }

        try:
            start_time = time.time()
            health_info["test_passed"] = await self.test_connection()
            health_info["response_time_ms"] = round((time.time() - start_time) * 1000, 2)
        except Exception as e:
            health_info["error"] = str(e)
            logger.error(f"Health check failed: {e}")

        return health_info

    def __repr__(self) -> str:
        return (
            f"ConnDB(initialized={self.is_initialized()}, "
            f"engine={self.engine is not None}, host={settings.DB_HOST})"
        )


# Instancia global singleton
_conn_db_instance = None


def get_db_connection() -> ConnDB:
    """Obtiene la instancia singleton de ConnDB."""
    global _conn_db_instance

    if _conn_db_instance is None:
        _conn_db_instance = ConnDB()

    return _conn_db_instance


async def initialize_database():
    """Función de conveniencia para inicializar la base de datos."""
    await get_db_connection().initialize()


async def close_database():
    """Función de conveniencia para cerrar la base de datos."""
    await get_db_connection().close()
