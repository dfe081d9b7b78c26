"""
Status configuration shared by every delivery partner table.
"""

from dataclasses import dataclass
from typing import Any

UNKNOWN_STATUS_TEXT = "حالة غير معروفة"


@dataclass(frozen=True)
class StatusConfig:
    """
    How a courier state id maps onto the local order lifecycle.

    Attributes:
        state_id: Courier state identifier as a string
        text: Arabic label shown by the courier
        internal_status: Local order status the state maps to
        can_delete: Order may still be deleted locally and at the courier
        can_edit: Order may still be edited
        releases_stock: Reserved stock is released (sold or back on the shelf)
        requires_manual_processing: Needs a human decision (partial delivery)
        receipt_received: Courier has settled the money for this state
        is_final: No further state changes are expected
    """

    state_id: str
    text: str
    internal_status: str
    can_delete: bool = False
    can_edit: bool = False
    releases_stock: bool = False
    requires_manual_processing: bool = False
    receipt_received: bool = False
    is_final: bool = False
    is_known: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "state_id": self.state_id,
            "text": self.text,
            "internal_status": self.internal_status,
            "can_delete": self.can_delete,
            "can_edit": self.can_edit,
            "releases_stock": self.releases_stock,
            "requires_manual_processing": self.requires_manual_processing,
            "receipt_received": self.receipt_received,
            "is_final": self.is_final,
            "is_known": self.is_known,
        }


def build_table(rows: list[tuple]) -> dict[str, StatusConfig]:
    """
    Build a state table from compact ``(state_id, text, internal_status, flags)`` rows.

    ``flags`` is a set of StatusConfig boolean field names that are True.
    """
    table = {}
    for state_id, text, internal_status, flags in rows:
        table[str(state_id)] = StatusConfig(
            state_id=str(state_id),
            text=text,
            internal_status=internal_status,
            **{flag: True for flag in flags},
        )
    return table
