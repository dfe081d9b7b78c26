"""
MODON courier state table.

Unlike Al-Waseet, an unknown MODON state never moves the order: the caller's
current status is kept.
"""

from app.domain.models.order import OrderStatus

from .base import UNKNOWN_STATUS_TEXT, StatusConfig, build_table

MODON_STATUSES: dict[str, StatusConfig] = build_table(
    [
        ("1", "طلب جديد", OrderStatus.PENDING, {"can_delete", "can_edit"}),
        ("2", "تم استلام الطلب من قبل المندوب", OrderStatus.SHIPPED, set()),
        ("3", "قيد التوصيل الى الزبون", OrderStatus.DELIVERY, set()),
        ("4", "تم التسليم للزبون", OrderStatus.DELIVERED, {"releases_stock", "receipt_received", "is_final"}),
        ("5", "مرتجع - في المخزن", OrderStatus.RETURNED, set()),
        ("6", "قيد الارجاع", OrderStatus.RETURNED, set()),
        (
            "7",
            "تم الارجاع الى التاجر",
            OrderStatus.RETURNED_IN_STOCK,
            {"releases_stock", "receipt_received", "is_final"},
        ),
        ("8", "لا يرد", OrderStatus.DELIVERY, set()),
        ("9", "مغلق", OrderStatus.DELIVERY, set()),
        ("10", "مؤجل", OrderStatus.DELIVERY, set()),
        ("11", "الغاء الطلب", OrderStatus.RETURNED, set()),
        ("12", "رفض الطلب", OrderStatus.RETURNED, set()),
        ("13", "اعادة الارسال الى الزبون", OrderStatus.DELIVERY, set()),
        ("14", "في موقع الفرز", OrderStatus.DELIVERY, set()),
        ("15", "في مكتب", OrderStatus.DELIVERY, set()),
    ]
)

DELIVERED_STATE = "4"
RETURNED_TO_MERCHANT_STATE = "7"
MODON_TERMINAL_STATES = frozenset({DELIVERED_STATE, RETURNED_TO_MERCHANT_STATE})


def get_modon_status(state_id, status_text: str = "", current_status: str | None = None) -> StatusConfig:
    """
    Return the config for ``state_id``.

    Args:
        state_id: MODON status id
        status_text: Label sent by MODON, used for unknown ids
        current_status: Local status to keep when the id is unknown
    """
    key = str(state_id).strip() if state_id is not None else ""
    config = MODON_STATUSES.get(key)
    if config is None:
        return StatusConfig(
            state_id=key,
            text=status_text or UNKNOWN_STATUS_TEXT,
            internal_status=current_status or OrderStatus.DELIVERY,
            is_known=False,
        )
    return config
