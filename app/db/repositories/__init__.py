"""
Repositories over the backend's existing tables.
"""

from app.db.repositories.base import BaseRepository, log_operation, with_retry
from app.db.repositories.cash_repository import CashRepository
from app.db.repositories.city_repository import CityRepository
from app.db.repositories.city_reward_repository import CityRewardRepository
from app.db.repositories.inventory_repository import InventoryRepository
from app.db.repositories.ledger_repository import LedgerRepository
from app.db.repositories.order_repository import OrderRepository

__all__ = [
    "BaseRepository",
    "CashRepository",
    "CityRepository",
    "CityRewardRepository",
    "InventoryRepository",
    "LedgerRepository",
    "OrderRepository",
    "log_operation",
    "with_retry",
]
