"""
Courier state tables and the registry that resolves them.
"""

from .alwaseet import ALWASEET_STATUSES, ALWASEET_TERMINAL_STATES, get_alwaseet_status
from .base import UNKNOWN_STATUS_TEXT, StatusConfig
from .modon import MODON_STATUSES, MODON_TERMINAL_STATES, get_modon_status
from .registry import DeliveryStatusRegistry, status_registry

__all__ = [
    "ALWASEET_STATUSES",
    "ALWASEET_TERMINAL_STATES",
    "MODON_STATUSES",
    "MODON_TERMINAL_STATES",
    "UNKNOWN_STATUS_TEXT",
    "DeliveryStatusRegistry",
    "StatusConfig",
    "get_alwaseet_status",
    "get_modon_status",
    "status_registry",
]
