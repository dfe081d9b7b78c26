"""
Dependencias FastAPI: repositorios y servicios compartidos por los endpoints.

Los repositorios comparten la conexión singleton (ConnDB); los tests
reemplazan estas funciones con ``app.dependency_overrides``.
"""

from functools import lru_cache

from app.db.repositories import (
    CashRepository,
    CityRepository,
    CityRewardRepository,
    InventoryRepository,
    LedgerRepository,
    OrderRepository,
)
from app.services.delivery.cities.synchronizer import CityRegionSynchronizer
from app.services.delivery.clients import WaseetClient
from app.services.delivery.reservation_policy import ReservationAuditor
from app.services.delivery.status_synchronizer import OrderStatusSynchronizer
from app.services.finance import (
    CashLedger,
    InvoiceReceiptService,
    PartialDeliveryFinancialHandler,
    ProfitAdjuster,
    ReplacementFinancialHandler,
    ReturnStatusHandler,
)
from app.services.loyalty import LoyaltyService
from app.services.orders.linkers import ReturnLinker
from app.services.orders.orchestrator import OrderOrchestrator, create_orchestrator
from app.services.rewards import CityRewardsService


@lru_cache()
def get_order_repository() -> OrderRepository:
    return OrderRepository()


@lru_cache()
def get_inventory_repository() -> InventoryRepository:
    return InventoryRepository()


@lru_cache()
def get_ledger_repository() -> LedgerRepository:
    return LedgerRepository()


@lru_cache()
def get_cash_repository() -> CashRepository:
    return CashRepository()


@lru_cache()
def get_city_repository() -> CityRepository:
    return CityRepository()


@lru_cache()
def get_city_reward_repository() -> CityRewardRepository:
    return CityRewardRepository()


def get_orchestrator() -> OrderOrchestrator:
    return create_orchestrator(get_order_repository(), get_inventory_repository())


def get_loyalty_service() -> LoyaltyService:
    return LoyaltyService(get_order_repository())


def get_return_linker() -> ReturnLinker:
    return ReturnLinker(get_order_repository())


def get_return_status_handler() -> ReturnStatusHandler:
    ledger_repository = get_ledger_repository()
    return ReturnStatusHandler(
        order_repository=get_order_repository(),
        inventory_repository=get_inventory_repository(),
        ledger_repository=ledger_repository,
        cash_ledger=CashLedger(get_cash_repository()),
        profit_adjuster=ProfitAdjuster(ledger_repository),
    )


def get_partial_delivery_handler() -> PartialDeliveryFinancialHandler:
    return PartialDeliveryFinancialHandler(get_order_repository(), get_ledger_repository(), get_inventory_repository())


def get_invoice_receipt_service() -> InvoiceReceiptService:
    return InvoiceReceiptService(get_order_repository())


def get_status_synchronizer() -> OrderStatusSynchronizer:
    """
    Sincronizador de estados con todos sus manejadores financieros.
    """
    ledger_repository = get_ledger_repository()
    return OrderStatusSynchronizer(
        order_repository=get_order_repository(),
        inventory_repository=get_inventory_repository(),
        ledger_repository=ledger_repository,
        return_handler=get_return_status_handler(),
        replacement_handler=ReplacementFinancialHandler(ledger_repository, get_order_repository()),
    )


def get_reservation_auditor() -> ReservationAuditor:
    return ReservationAuditor(get_order_repository(), get_inventory_repository())


def get_city_synchronizer() -> CityRegionSynchronizer:
    return CityRegionSynchronizer(get_city_repository())


def get_city_rewards_service() -> CityRewardsService:
    return CityRewardsService(get_order_repository(), get_city_reward_repository())


def get_delivery_client_factory():
    """Clase del cliente del socio; se llama con ``(partner, token)``."""
    return WaseetClient
