"""Tests unitarios para el cliente de la API de comerciantes (الوسيط / مدن)."""

from unittest.mock import AsyncMock, patch

import pytest

from app.services.delivery.clients import WaseetClient, chunk_unique_ids
from app.utils.error_handler import DeliveryPartnerException, ErrorCode


class TestChunkUniqueIds:
    """Tests para el troceado de ids."""

    def test_deduplicates_and_chunks(self):
        """Debe eliminar duplicados y vacíos conservando el orden."""
        chunks = chunk_unique_ids(["1", 2, "1", None, " ", "3", "4"], 2)
        assert chunks == [["1", "2"], ["3", "4"]]

    def test_empty(self):
        """Debe retornar lista vacía sin ids."""
        assert chunk_unique_ids([], 25) == []


class TestWaseetClient:
    """Tests para el cliente sin red."""

    def test_unsupported_partner_raises(self):
        """Debe rechazar socios desconocidos."""
        with pytest.raises(ValueError):
            WaseetClient("local", "token")

    def test_unwrap_success(self):
        """Debe retornar 'data' de una respuesta exitosa."""
        client = WaseetClient("alwaseet", "token")
        body = {"status": True, "errNum": "S000", "msg": "ok", "data": [{"id": 1}]}
        assert client._unwrap("citys", 200, body) == [{"id": 1}]

    def test_unwrap_api_error(self):
        """Debe lanzar DeliveryPartnerException con el errNum de la API."""
        client = WaseetClient("modon", "token")
        body = {"status": False, "errNum": "21", "msg": "token expired", "data": None}

        with pytest.raises(DeliveryPartnerException) as exc_info:
            client._unwrap("statuses", 200, body)

        assert exc_info.value.api_error_code == "21"
        assert exc_info.value.partner == "modon"
        assert exc_info.value.message == "token expired"
        assert exc_info.value.error_code == ErrorCode.DELIVERY_PARTNER_ERROR

    def test_unwrap_non_dict(self):
        """Debe rechazar respuestas que no son un sobre JSON."""
        client = WaseetClient("alwaseet", "token")
        with pytest.raises(DeliveryPartnerException):
            client._unwrap("citys", 200, ["unexpected"])

    @pytest.mark.asyncio
    async def test_initialize_without_token_raises(self):
        """Debe fallar al inicializar sin token configurado."""
        client = WaseetClient("alwaseet", None)
        client.token = None
        with pytest.raises(DeliveryPartnerException):
            await client.initialize()

    @pytest.mark.asyncio
    async def test_get_orders_by_ids_in_bulk_chunks(self):
        """Debe consultar los pedidos en lotes del tamaño configurado."""
        client = WaseetClient("alwaseet", "token")
        client.bulk_size = 2

        with patch.object(client, "_request", new=AsyncMock(side_effect=[[{"id": "1"}, {"id": "2"}], [{"id": "3"}]])):
            orders = await client.get_orders_by_ids(["1", "2", "2", "3"])

            assert [order["id"] for order in orders] == ["1", "2", "3"]
            first_call = client._request.await_args_list[0]
            assert first_call.args == ("get-orders-by-ids-bulk",)
            assert first_call.kwargs == {"method": "POST", "form": {"ids": "1,2"}}

    @pytest.mark.asyncio
    async def test_get_invoice_orders_unwraps_invoice(self):
        """Debe devolver la factura y sus pedidos."""
        client = WaseetClient("alwaseet", "token")
        data = {"invoice": [{"id": 11, "status": "تم الاستلام من قبل التاجر"}], "orders": [{"id": 9001}]}

        with patch.object(client, "_request", new=AsyncMock(return_value=data)):
            result = await client.get_invoice_orders(11)

            client._request.assert_awaited_once_with("get_merchant_invoice_orders", params={"invoice_id": 11})

        assert result == {"invoice": {"id": 11, "status": "تم الاستلام من قبل التاجر"}, "orders": [{"id": 9001}]}

    @pytest.mark.asyncio
    async def test_get_invoice_orders_without_data(self):
        """Debe tolerar una factura sin pedidos."""
        client = WaseetClient("modon", "token")

        with patch.object(client, "_request", new=AsyncMock(return_value=None)):
            result = await client.get_invoice_orders(12)

        assert result == {"invoice": None, "orders": []}
