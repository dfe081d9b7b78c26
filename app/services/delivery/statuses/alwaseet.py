"""
Al-Waseet courier state table.

Only states 0 and 1 (not yet picked up) allow editing or deleting. Stock is
released only when the parcel is delivered (4) or physically back at the
merchant (17); every "returned" state before 17 keeps the reservation.
"""

from app.domain.models.order import OrderStatus

from .base import UNKNOWN_STATUS_TEXT, StatusConfig, build_table

_EDITABLE = {"can_delete", "can_edit"}

ALWASEET_STATUSES: dict[str, StatusConfig] = build_table(
    [
        ("0", "معطل او غير فعال", OrderStatus.PENDING, _EDITABLE),
        ("1", "فعال ( قيد التجهير)", OrderStatus.PENDING, _EDITABLE),
        ("2", "تم الاستلام من قبل المندوب", OrderStatus.SHIPPED, set()),
        ("3", "قيد التوصيل الى الزبون (في عهدة المندوب)", OrderStatus.DELIVERY, set()),
        ("4", "تم التسليم للزبون", OrderStatus.DELIVERED, {"releases_stock"}),
        ("5", "في موقع فرز بغداد", OrderStatus.SHIPPED, set()),
        ("6", "في مكتب", OrderStatus.SHIPPED, set()),
        ("7", "في الطريق الى مكتب المحافظة", OrderStatus.SHIPPED, set()),
        ("8", "في مخزن بغداد", OrderStatus.SHIPPED, set()),
        ("9", "في طريقه للمحافظة", OrderStatus.SHIPPED, set()),
        ("10", "وصل الى مكتب المحافظة", OrderStatus.SHIPPED, set()),
        ("11", "تم استلامه من قبل المكتب", OrderStatus.SHIPPED, set()),
        ("12", "في مخزن مرتجع المحافظة", OrderStatus.RETURNED, set()),
        ("13", "في مخزن مرتجع بغداد", OrderStatus.RETURNED, set()),
        ("14", "اعادة الارسال الى الزبون", OrderStatus.SHIPPED, set()),
        ("15", "ارجاع الى التاجر", OrderStatus.RETURNED, set()),
        ("16", "قيد الارجاع الى التاجر (في عهدة المندوب)", OrderStatus.RETURNED, set()),
        ("17", "تم الارجاع الى التاجر", OrderStatus.RETURNED_IN_STOCK, {"releases_stock", "is_final"}),
        ("18", "تغيير سعر", OrderStatus.DELIVERY, set()),
        ("19", "ارجاع بعد الاستلام", OrderStatus.RETURNED, set()),
        ("20", "تبديل بعد التوصيل", OrderStatus.RETURNED, set()),
        (
            "21",
            "تم التسليم للزبون واستلام منة الاسترجاع",
            OrderStatus.PARTIAL_DELIVERY,
            {"requires_manual_processing"},
        ),
        ("22", "ارسال الى الفزر", OrderStatus.DELIVERY, set()),
        ("23", "ارسال الى مخزن الارجاعات", OrderStatus.RETURNED, set()),
        ("24", "تم تغيير محافظة الزبون", OrderStatus.DELIVERY, set()),
        ("25", "لا يرد", OrderStatus.DELIVERY, set()),
        ("26", "لا يرد بعد الاتفاق", OrderStatus.DELIVERY, set()),
        ("27", "مغلق", OrderStatus.DELIVERY, set()),
        ("28", "مغلق بعد الاتفاق", OrderStatus.DELIVERY, set()),
        ("29", "مؤجل", OrderStatus.DELIVERY, set()),
        ("30", "مؤجل لحين اعادة الطلب لاحقا", OrderStatus.DELIVERY, set()),
        ("31", "الغاء الطلب", OrderStatus.RETURNED, set()),
        ("32", "رفض الطلب", OrderStatus.RETURNED, set()),
        ("33", "مفصول عن الخدمة", OrderStatus.DELIVERY, set()),
        ("34", "طلب مكرر", OrderStatus.DELIVERY, set()),
        ("35", "مستلم مسبقا", OrderStatus.DELIVERY, set()),
        ("36", "الرقم غير معرف", OrderStatus.DELIVERY, set()),
        ("37", "الرقم غير داخل في الخدمة", OrderStatus.DELIVERY, set()),
        ("38", "العنوان غير دقيق", OrderStatus.DELIVERY, set()),
        ("39", "لم يطلب", OrderStatus.DELIVERY, set()),
        ("40", "حظر المندوب", OrderStatus.DELIVERY, set()),
        ("41", "لا يمكن الاتصال بالرقم", OrderStatus.DELIVERY, set()),
        ("42", "تغيير المندوب", OrderStatus.DELIVERY, set()),
        ("43", "تغيير العنوان", OrderStatus.DELIVERY, set()),
        ("44", "اخراج من المخزن وارسالة الى الفرز", OrderStatus.DELIVERY, set()),
    ]
)

# States after which the status sync stops polling the order
ALWASEET_TERMINAL_STATES = frozenset({"17", "31", "32"})

DELIVERED_STATE = "4"
PARTIAL_DELIVERY_STATE = "21"
RETURNED_TO_MERCHANT_STATE = "17"


def get_alwaseet_status(state_id) -> StatusConfig:
    """Return the config for ``state_id``; unknown ids map to an in-delivery placeholder."""
    key = str(state_id).strip() if state_id is not None else ""
    config = ALWASEET_STATUSES.get(key)
    if config is None:
        return StatusConfig(
            state_id=key,
            text=UNKNOWN_STATUS_TEXT,
            internal_status=OrderStatus.DELIVERY,
            is_known=False,
        )
    return config
