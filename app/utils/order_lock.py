"""
OrderLock - Lock distribuido por pedido.

Evita que dos actualizaciones de estado de la empresa de entrega procesen el
mismo pedido a la vez (sincronización programada, llamadas manuales). Sin el
lock, dos procesos podrían devolver el mismo stock o registrar dos veces el
mismo movimiento de caja.

Usage:
    from app.utils.order_lock import OrderLock

    async with OrderLock(order_id):
        await process_status_change(order)
"""

import asyncio
import logging
import secrets
import time
from typing import Optional

import redis.asyncio as redis

from app.core.config import get_settings
from app.core.redis_client import get_redis_client
from app.utils.error_handler import LockAcquisitionException

logger = logging.getLogger(__name__)

__all__ = ["OrderLock"]

# Delete the key only if it still holds our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class OrderLock:
    """
    Lock Redis para un pedido.

    - ``SET key token NX EX timeout`` para adquirir
    - liberación con token (script Lua) para no borrar el lock de otro proceso
    - reintentos con backoff exponencial acotado

    Notes:
        - Lock key format: ``lock:order:{order_id}``
        - El TTL evita deadlocks si el proceso muere con el lock tomado
    """

    def __init__(
        self,
        order_id: str,
        timeout_seconds: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_delay: float = 0.2,
        client: Optional[redis.Redis] = None,
    ):
        settings = get_settings()
        self.order_id = str(order_id)
        self.lock_key = f"lock:order:{self.order_id}"
        self.timeout_seconds = timeout_seconds or settings.ORDER_LOCK_TIMEOUT_SECONDS
        self.max_retries = max_retries if max_retries is not None else settings.ORDER_LOCK_MAX_RETRIES
        self.retry_delay = retry_delay
        self._client = client
        self._token = secrets.token_hex(16)
        self.acquired = False
        self.start_time: Optional[float] = None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = get_redis_client()
        return self._client

    async def acquire(self) -> bool:
        """
        Intenta adquirir el lock una sola vez.

        Returns:
            bool: True si el lock fue adquirido
        """
        acquired = await self.client.set(self.lock_key, self._token, nx=True, ex=self.timeout_seconds)
        if acquired:
            self.acquired = True
            self.start_time = time.monotonic()
            logger.debug(f"✅ Acquired lock '{self.lock_key}'")
        return bool(acquired)

    async def release(self) -> None:
        if not self.acquired:
            return

        released = await self.client.eval(_RELEASE_SCRIPT, 1, self.lock_key, self._token)
        self.acquired = False
        duration = time.monotonic() - (self.start_time or 0)
        if released:
            logger.debug(f"🔓 Released lock '{self.lock_key}' (held for {duration:.2f}s)")
        else:
            logger.warning(f"Lock '{self.lock_key}' expired before release (held for {duration:.2f}s)")

    async def __aenter__(self) -> "OrderLock":
        delay = self.retry_delay
        for attempt in range(self.max_retries + 1):
            if await self.acquire():
                return self
            if attempt < self.max_retries:
                await asyncio.sleep(delay)
                delay = min(delay * 1.5, 2.0)

        logger.warning(f"⏳ Order {self.order_id} is being processed elsewhere")
        raise LockAcquisitionException(
            message=f"Could not acquire lock for order {self.order_id}",
            lock_key=self.lock_key,
        )

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.release()
        if exc_type:
            logger.debug(f"Lock released for order {self.order_id} (exception occurred: {exc_type.__name__})")
        return False
