"""
Delivery status registry.

Single entry point to ask what a courier state means for a local order,
whatever the partner is.
"""

import logging
from collections import Counter
from typing import Any

from app.domain.models.order import DeliveryPartner, OrderStatus

from .alwaseet import ALWASEET_STATUSES, get_alwaseet_status
from .base import StatusConfig
from .modon import MODON_STATUSES, get_modon_status

logger = logging.getLogger(__name__)

_LOCAL_EDITABLE = frozenset({OrderStatus.PENDING})


class DeliveryStatusRegistry:
    """Resolve courier state ids into StatusConfig for any partner."""

    def get_status_config(
        self,
        partner: str | None,
        state_id: Any,
        current_status: str | None = None,
        status_text: str = "",
    ) -> StatusConfig:
        """
        Resolve a state id.

        For the ``local`` partner the state id is the local status itself.
        """
        partner = partner or DeliveryPartner.LOCAL

        if partner == DeliveryPartner.ALWASEET:
            config = get_alwaseet_status(state_id)
        elif partner == DeliveryPartner.MODON:
            config = get_modon_status(state_id, status_text, current_status)
        else:
            config = self._local_status_config(state_id or current_status)

        if not config.is_known:
            logger.warning(f"⚠️ Unknown {partner} delivery state: {state_id!r}")
        return config

    def can_delete_order(self, partner: str | None, state_id: Any, current_status: str | None = None) -> bool:
        return self.get_status_config(partner, state_id, current_status).can_delete

    def can_edit_order(self, partner: str | None, state_id: Any, current_status: str | None = None) -> bool:
        return self.get_status_config(partner, state_id, current_status).can_edit

    def releases_stock(self, partner: str | None, state_id: Any, current_status: str | None = None) -> bool:
        return self.get_status_config(partner, state_id, current_status).releases_stock

    def order_config(self, order) -> StatusConfig:
        """Config for an OrderDomain (or a row dict with the same keys)."""
        if isinstance(order, dict):
            partner = order.get("delivery_partner")
            state_id = order.get("delivery_status")
            status = order.get("status")
        else:
            partner = order.delivery_partner
            state_id = order.delivery_status
            status = order.status

        if partner in (None, DeliveryPartner.LOCAL) or state_id is None:
            return self._local_status_config(status)
        return self.get_status_config(partner, state_id, current_status=status)

    def get_status_stats(self, orders: list) -> dict[str, Any]:
        """
        Aggregate counts for a list of orders.

        Returns:
            dict with total, can_delete, cannot_delete, can_edit,
            releases_stock, final and by_status (internal status -> count)
        """
        by_status: Counter = Counter()
        stats = {
            "total": 0,
            "can_delete": 0,
            "cannot_delete": 0,
            "can_edit": 0,
            "releases_stock": 0,
            "final": 0,
        }

        for order in orders:
            config = self.order_config(order)
            stats["total"] += 1
            if config.can_delete:
                stats["can_delete"] += 1
            else:
                stats["cannot_delete"] += 1
            if config.can_edit:
                stats["can_edit"] += 1
            if config.releases_stock:
                stats["releases_stock"] += 1
            if config.is_final:
                stats["final"] += 1
            by_status[config.internal_status] += 1

        stats["by_status"] = dict(by_status)
        return stats

    def list_statuses(self, partner: str) -> list[StatusConfig]:
        """All known states of a partner ordered by numeric id."""
        if partner == DeliveryPartner.ALWASEET:
            table = ALWASEET_STATUSES
        elif partner == DeliveryPartner.MODON:
            table = MODON_STATUSES
        else:
            return [self._local_status_config(status) for status in OrderStatus.ALL]
        return sorted(table.values(), key=lambda config: int(config.state_id))

    @staticmethod
    def _local_status_config(status: str | None) -> StatusConfig:
        status = status or OrderStatus.PENDING
        editable = status in _LOCAL_EDITABLE
        return StatusConfig(
            state_id=status,
            text=status,
            internal_status=status,
            can_delete=editable,
            can_edit=editable,
            releases_stock=status in OrderStatus.STOCK_RELEASED,
            is_final=status in (OrderStatus.COMPLETED, OrderStatus.RETURNED_IN_STOCK, OrderStatus.CANCELLED),
            is_known=status in OrderStatus.ALL,
        )


status_registry = DeliveryStatusRegistry()
