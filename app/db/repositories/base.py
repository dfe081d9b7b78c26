"""
Base Repository for database operations.

Provides common functionality for every repository class: connection
management, session handling, error translation and retry logic. Queries
are raw SQL through ``sqlalchemy.text`` against the backend's existing
tables.
"""

import asyncio
import functools
import logging
from abc import ABC
from typing import Any, AsyncContextManager, Callable, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.db.connection import ConnDB, get_db_connection
from app.utils.error_handler import AppException, DatabaseConnectionException

settings = get_settings()
logger = logging.getLogger(__name__)

# Failures of the connection itself; the statement may succeed on a new connection
CONNECTION_ERRORS = (OperationalError, InterfaceError, DisconnectionError, OSError)

# serialization_failure, deadlock_detected, triggered_data_change_violation
TRANSIENT_SQLSTATES = frozenset({"40001", "40P01", "27000"})


def is_retryable_error(exc: BaseException) -> bool:
    """
    Whether a database error is worth another attempt.

    Connection failures and concurrent-modification conflicts are; constraint
    violations and bad SQL never are.
    """
    if isinstance(exc, CONNECTION_ERRORS):
        return True
    if isinstance(exc, DBAPIError):
        if exc.connection_invalidated:
            return True
        sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
        return sqlstate in TRANSIENT_SQLSTATES or "already modified" in str(exc.orig)
    return False


def with_retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: tuple = (DatabaseConnectionException,),
) -> Callable:
    """
    Decorator for retrying database operations with exponential backoff.

    An AppException flagged as not retryable is raised on the first attempt.

    Args:
        max_attempts: Maximum number of retry attempts
        delay: Initial delay between retries in seconds
        backoff: Multiplier for exponential backoff
        exceptions: Tuple of exceptions to catch and retry
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            current_delay = delay
            last_exception = None

            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e
                    if isinstance(e, AppException) and not e.is_retryable:
                        raise
                    if attempt < max_attempts - 1:
                        logger.warning(
                            f"Attempt {attempt + 1}/{max_attempts} failed for {func.__name__}: {e}. "
                            f"Retrying in {current_delay:.1f}s..."
                        )
                        await asyncio.sleep(current_delay)
                        current_delay *= backoff
                    else:
                        logger.error(f"All {max_attempts} attempts failed for {func.__name__}")

            raise last_exception

        return wrapper

    return decorator


def log_operation(operation_name: str = None) -> Callable:
    """Decorator for logging database operations."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            op_name = operation_name or f"{self.__class__.__name__}.{func.__name__}"
            logger.debug(f"Starting operation: {op_name}")

            try:
                result = await func(self, *args, **kwargs)
                logger.debug(f"Operation successful: {op_name}")
                return result
            except Exception as e:
                logger.error(f"Operation failed: {op_name} - {e}")
                raise

        return wrapper

    return decorator


class BaseRepository(ABC):
    """
    Abstract base repository.

    Derived repositories declare the tables they need in ``TABLES`` and
    implement their domain operations on top of ``fetch_all``, ``fetch_one``
    and ``execute_query_with_commit``.
    """

    TABLES: tuple[str, ...] = ()

    def __init__(self, conn_db: Optional[ConnDB] = None):
        self.conn_db: ConnDB = conn_db or get_db_connection()
        self._initialized: bool = False
        self._repository_name: str = self.__class__.__name__
        logger.debug(f"{self._repository_name} instantiated")

    @log_operation("repository_initialization")
    @with_retry(max_attempts=3, delay=1.0)
    async def initialize(self) -> None:
        """
        Initialize the repository ensuring database connection is available.

        Raises:
            DatabaseConnectionException: If initialization fails
        """
        try:
            if not self.conn_db.is_initialized():
                await self.conn_db.initialize()

            await self._verify_table_access()

            self._initialized = True
            logger.info(f"{self._repository_name} initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize {self._repository_name}: {e}")
            raise DatabaseConnectionException(
                message=f"Failed to initialize {self._repository_name}: {str(e)}",
                db_host=settings.DB_HOST,
                connection_type="repository_initialization",
            ) from e

    async def _verify_table_access(self) -> None:
        """Check that every table in ``TABLES`` can be read."""
        async with self.conn_db.get_session() as session:
            for table in self.TABLES:
                await session.execute(text(f"SELECT 1 FROM {table} LIMIT 1"))

    def is_initialized(self) -> bool:
        return self._initialized and self.conn_db.is_initialized()

    def get_session(self) -> AsyncContextManager[AsyncSession]:
        """
        Get a database session from the connection pool.

        Raises:
            DatabaseConnectionException: If the connection is not initialized
        """
        if not self.conn_db.is_initialized():
            raise DatabaseConnectionException(
                message=f"{self._repository_name} used before database initialization",
                db_host=settings.DB_HOST,
                connection_type="session_acquisition",
            )

        return self.conn_db.get_session()

    @log_operation()
    async def fetch_all(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a SELECT and return rows as dictionaries."""
        try:
            async with self.get_session() as session:
                result = await session.execute(text(query), params or {})
                return [dict(row) for row in result.mappings().all()]
        except DatabaseConnectionException:
            raise
        except Exception as e:
            logger.error(f"Query execution failed: {e}")
            raise DatabaseConnectionException(
                message=f"Query execution failed: {str(e)}",
                db_host=settings.DB_HOST,
                connection_type="query_execution",
                is_retryable=is_retryable_error(e),
            ) from e

    async def fetch_one(self, query: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        rows = await self.fetch_all(query, params)
        return rows[0] if rows else None

    @log_operation()
    async def execute_query_with_commit(self, query: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Execute a write statement and commit.

        Returns:
            The first row as a dict when the statement has RETURNING, else the
            affected row count.

        Raises:
            DatabaseConnectionException: Retryable only when the failure happened
                before the commit was sent
        """
        committing = False
        try:
            async with self.get_session() as session:
                result = await session.execute(text(query), params or {})
                row = result.mappings().first() if result.returns_rows else None
                committing = True
                await session.commit()
                return dict(row) if row is not None else result.rowcount
        except DatabaseConnectionException:
            raise
        except Exception as e:
            logger.error(f"Query execution with commit failed: {e}")
            raise DatabaseConnectionException(
                message=f"Query execution with commit failed: {str(e)}",
                db_host=settings.DB_HOST,
                connection_type="query_execution_commit",
                is_retryable=not committing and is_retryable_error(e),
            ) from e

    async def health_check(self) -> Dict[str, Any]:
        try:
            await self.fetch_one("SELECT 1 AS ok")
            return {"status": "healthy", "repository": self._repository_name}
        except DatabaseConnectionException as e:
            return {"status": "unhealthy", "repository": self._repository_name, "error": str(e)}

    def __repr__(self) -> str:
        return f"<{self._repository_name}(initialized={self._initialized})>"
