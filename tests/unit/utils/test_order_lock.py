"""Tests unitarios para OrderLock."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.utils.error_handler import LockAcquisitionException
from app.utils.order_lock import OrderLock


def make_client(set_results):
    client = MagicMock()
    client.set = AsyncMock(side_effect=set_results)
    client.eval = AsyncMock(return_value=1)
    return client


class TestOrderLock:
    """Tests para el lock Redis por pedido."""

    @pytest.mark.asyncio
    async def test_acquire_and_release(self):
        """Debe adquirir con SET NX EX y liberar con el token."""
        client = make_client([True])
        lock = OrderLock("42", timeout_seconds=60, max_retries=0, client=client)

        async with lock:
            assert lock.acquired

        client.set.assert_awaited_once_with("lock:order:42", lock._token, nx=True, ex=60)
        client.eval.assert_awaited_once()
        assert client.eval.await_args.args[1:] == (1, "lock:order:42", lock._token)
        assert not lock.acquired

    @pytest.mark.asyncio
    async def test_retries_until_acquired(self):
        """Debe reintentar mientras otro proceso tenga el lock."""
        client = make_client([False, False, True])
        lock = OrderLock("42", max_retries=3, retry_delay=0.01, client=client)

        with patch("app.utils.order_lock.asyncio.sleep", new=AsyncMock()) as sleep:
            async with lock:
                pass

        assert client.set.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_raises_when_never_acquired(self):
        """Debe lanzar LockAcquisitionException al agotar los reintentos."""
        client = make_client([False, False])
        lock = OrderLock("42", max_retries=1, retry_delay=0.01, client=client)

        with patch("app.utils.order_lock.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(LockAcquisitionException) as exc_info:
                async with lock:
                    pass

        assert exc_info.value.lock_key == "lock:order:42"
        client.eval.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_releases_on_exception(self):
        """Debe liberar el lock aunque el bloque falle."""
        client = make_client([True])
        lock = OrderLock("42", max_retries=0, client=client)

        with pytest.raises(RuntimeError):
            async with lock:
                raise RuntimeError("boom")

        client.eval.assert_awaited_once()
