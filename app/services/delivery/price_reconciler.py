"""
Price reconciliation between a courier order and the local order.

The courier's total includes delivery; the local ``total_amount`` is the
products alone. When the courier changes the price, the local amounts follow
and the difference with the original products price is stored as a
discount or an increase.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from app.domain.models import OrderDomain, PriceChangeType
from app.domain.value_objects.money import Money

logger = logging.getLogger(__name__)


@dataclass
class PriceReconciliation:
    partner_total: Money
    partner_delivery_fee: Money
    products_amount: Money
    original_products_amount: Money
    price_diff: Money
    needs_update: bool
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    updates: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def change_type(self) -> str | None:
        return self.updates.get("price_change_type")


def reconcile_prices(partner_order: Dict[str, Any], order: OrderDomain) -> PriceReconciliation:
    """
    Compare a courier order with the local order.

    Args:
        partner_order: Courier payload (``total_price`` or ``price``, ``delivery_price``)
        order: Local order

    Returns:
        PriceReconciliation: Figures, validation and the column updates to apply
    """
    currency = order.currency
    partner_total = Money.from_value(partner_order.get("total_price") or partner_order.get("price"), currency)
    partner_fee = Money.from_value(partner_order.get("delivery_price"), currency)

    products = partner_total - partner_fee
    original_products = order.final_amount - order.delivery_fee
    price_diff = original_products - products

    result = PriceReconciliation(
        partner_total=partner_total,
        partner_delivery_fee=partner_fee,
        products_amount=products,
        original_products_amount=original_products,
        price_diff=price_diff,
        needs_update=products != order.total_amount and partner_total.is_positive,
    )

    if partner_total.is_positive and partner_total < partner_fee:
        result.errors.append("السعر الشامل أقل من رسوم التوصيل")
    if products.is_negative:
        result.errors.append("سعر المنتجات سالب")
    if partner_total.is_zero:
        result.warnings.append("السعر الشامل = 0")

    if result.needs_update and result.is_valid:
        result.updates = {
            "total_amount": products.amount,
            "sales_amount": products.amount,
            "delivery_fee": partner_fee.amount,
            "final_amount": (products + partner_fee).amount,
        }
        if price_diff.is_positive:
            result.updates.update(
                discount=price_diff.amount, price_increase=0, price_change_type=PriceChangeType.DISCOUNT
            )
        elif price_diff.is_negative:
            result.updates.update(
                discount=0, price_increase=abs(price_diff).amount, price_change_type=PriceChangeType.INCREASE
            )
        else:
            result.updates.update(discount=0, price_increase=0, price_change_type=None)

    for warning in result.warnings:
        logger.warning(f"⚠️ Order {order.display_reference}: {warning}")
    for error in result.errors:
        logger.error(f"❌ Order {order.display_reference}: {error}")

    return result
