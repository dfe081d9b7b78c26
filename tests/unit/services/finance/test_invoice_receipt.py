"""Tests unitarios para la recepción de facturas del socio de entrega."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services.finance import InvoiceReceiptService
from app.services.finance.invoice_receipt import RECEIVED_INVOICE_STATUS
from app.utils.error_handler import DatabaseConnectionException, DeliveryPartnerException


def receipt_state(order_id, status="delivered", received=False):
    return {"id": order_id, "order_number": f"ORD-{order_id}", "status": status, "receipt_received": received}


class FakeInvoiceClient:
    def __init__(self, invoices, invoice_orders):
        self.invoices = invoices
        self.invoice_orders = invoice_orders
        self.requested = []

    def __call__(self, partner, token=None):
        self.partner = partner
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def get_merchant_invoices(self):
        return self.invoices

    async def get_invoice_orders(self, invoice_id):
        self.requested.append(invoice_id)
        orders = self.invoice_orders[invoice_id]
        if isinstance(orders, Exception):
            raise orders
        return {"invoice": {"id": invoice_id}, "orders": orders}


class TestMarkInvoiceReceived:
    """Tests para mark_invoice_received."""

    def setup_method(self):
        self.order_repository = MagicMock()
        self.order_repository.get_receipt_state = AsyncMock()
        self.order_repository.mark_receipt_received = AsyncMock(
            side_effect=lambda order_id: {"id": order_id, "order_number": f"ORD-{order_id}", "status": "completed"}
        )
        self.service = InvoiceReceiptService(self.order_repository)

    @pytest.mark.asyncio
    async def test_delivered_order_becomes_completed(self):
        """Debe registrar la recepción de un pedido entregado."""
        self.order_repository.get_receipt_state.return_value = receipt_state("1")

        result = await self.service.mark_invoice_received(["1"], invoice_id="INV-7")

        assert result["results"][0]["updated"] is True
        assert result["results"][0]["status"] == "completed"
        assert result["summary"] == {"total": 1, "successful": 1, "failed": 0, "invoice_id": "INV-7"}
        self.order_repository.mark_receipt_received.assert_awaited_once_with("1")

    @pytest.mark.asyncio
    async def test_skips_orders_not_eligible(self):
        """No debe tocar pedidos inexistentes, ya recibidos o sin entregar."""
        states = {
            "1": None,
            "2": receipt_state("2", status="completed", received=True),
            "3": receipt_state("3", status="delivery"),
        }
        self.order_repository.get_receipt_state.side_effect = lambda order_id: states[order_id]

        result = await self.service.mark_invoice_received(["1", "2", "3"])

        reasons = [entry["reason"] for entry in result["results"]]
        assert reasons == ["Order not found", "Already received", "Not delivered yet (status: delivery)"]
        assert all(entry["success"] and not entry["updated"] for entry in result["results"])
        assert result["summary"]["successful"] == 0
        assert result["summary"]["failed"] == 0
        self.order_repository.mark_receipt_received.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_update_is_not_counted(self):
        """Debe reportar sin error cuando otro proceso ya registró la recepción."""
        self.order_repository.get_receipt_state.return_value = receipt_state("1")
        self.order_repository.mark_receipt_received.side_effect = None
        self.order_repository.mark_receipt_received.return_value = None

        result = await self.service.mark_invoice_received(["1"])

        assert result["results"][0]["updated"] is False
        assert result["results"][0]["reason"] == "No update needed or concurrent modification"
        assert result["summary"]["successful"] == 0

    @pytest.mark.asyncio
    async def test_failed_order_does_not_stop_the_rest(self):
        """Debe contar el fallo de un pedido y seguir con los demás."""
        self.order_repository.get_receipt_state.side_effect = lambda order_id: receipt_state(order_id)
        self.order_repository.mark_receipt_received.side_effect = [
            DatabaseConnectionException("deadlock"),
            {"id": "2", "order_number": "ORD-2", "status": "completed"},
        ]

        result = await self.service.mark_invoice_received(["1", "2"])

        assert result["results"][0]["success"] is False
        assert result["results"][1]["updated"] is True
        assert result["summary"]["successful"] == 1
        assert result["summary"]["failed"] == 1


class TestSyncReceivedInvoices:
    """Tests para la sincronización de facturas recibidas."""

    def setup_method(self):
        self.order_repository = MagicMock()
        self.order_repository.get_receipt_state = AsyncMock(side_effect=lambda order_id: receipt_state(order_id))
        self.order_repository.mark_receipt_received = AsyncMock(
            side_effect=lambda order_id: {"id": order_id, "order_number": f"ORD-{order_id}", "status": "completed"}
        )
        self.order_repository.find_ids_by_partner_order_ids = AsyncMock(return_value={"9001": "1", "9002": "2"})

    @pytest.mark.asyncio
    async def test_only_received_invoices_complete_orders(self):
        """Debe completar sólo los pedidos de facturas ya recibidas."""
        client = FakeInvoiceClient(
            invoices=[
                {"id": 11, "status": RECEIVED_INVOICE_STATUS},
                {"id": 12, "status": "قيد المعالجة"},
            ],
            invoice_orders={"11": [{"id": 9001}, {"id": 9002}, {"id": 9999}]},
        )
        service = InvoiceReceiptService(self.order_repository, client_factory=client)

        stats = await service.sync_received_invoices("alwaseet")

        assert client.requested == ["11"]
        self.order_repository.find_ids_by_partner_order_ids.assert_awaited_once_with(
            "alwaseet", ["9001", "9002", "9999"]
        )
        assert stats == {
            "invoices_checked": 2,
            "invoices_received": 1,
            "orders_matched": 2,
            "orders_updated": 2,
            "errors": 0,
        }

    @pytest.mark.asyncio
    async def test_invoice_error_skips_that_invoice(self):
        """Debe seguir con las demás facturas si una falla en el socio."""
        client = FakeInvoiceClient(
            invoices=[
                {"id": 11, "status": RECEIVED_INVOICE_STATUS},
                {"id": 13, "received": True},
            ],
            invoice_orders={
                "11": DeliveryPartnerException("timeout", partner="alwaseet", endpoint="get_merchant_invoice_orders"),
                "13": [{"id": 9001}],
            },
        )
        self.order_repository.find_ids_by_partner_order_ids.return_value = {"9001": "1"}
        service = InvoiceReceiptService(self.order_repository, client_factory=client)

        stats = await service.sync_received_invoices("alwaseet")

        assert stats["errors"] == 1
        assert stats["orders_updated"] == 1
        self.order_repository.mark_receipt_received.assert_awaited_once_with("1")
