"""Manager services for business operations."""

from .cart_manager import CartManager
from .inventory_manager import InventoryManager

__all__ = ["CartManager", "InventoryManager"]
