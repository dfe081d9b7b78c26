"""
Order totals for regular, replacement and return orders.

``total_amount`` is always the products part and ``final_amount`` what the
courier collects. On replacements and returns ``final_amount`` may be
negative: the merchant pays the customer.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from app.domain.models import OrderDomain, OrderItemDomain, PriceChangeType
from app.domain.value_objects.money import Money
from app.utils.error_handler import ValidationException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Money
    discount: Money
    delivery_fee: Money
    total_amount: Money
    final_amount: Money
    price_difference: Optional[Money] = None
    refund_amount: Optional[Money] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subtotal": self.subtotal.amount,
            "discount": self.discount.amount,
            "delivery_fee": self.delivery_fee.amount,
            "total_amount": self.total_amount.amount,
            "final_amount": self.final_amount.amount,
            "price_difference": self.price_difference.amount if self.price_difference is not None else None,
            "refund_amount": self.refund_amount.amount if self.refund_amount is not None else None,
        }


@dataclass(frozen=True)
class PriceChange:
    discount: Money
    price_increase: Money
    change_type: Optional[str]


def items_subtotal(items: Iterable[OrderItemDomain], currency: str = "IQD") -> Money:
    total = Money.zero(currency)
    for item in items:
        total = total + item.total_price
    return total


class TotalsCalculator:
    """Stateless totals calculator."""

    def __init__(self, currency: str = "IQD"):
        self.currency = currency

    def calculate_regular(
        self,
        items: Iterable[OrderItemDomain],
        discount: Optional[Money] = None,
        delivery_fee: Optional[Money] = None,
    ) -> OrderTotals:
        """
        Regular order: subtotal - discount, plus delivery.

        Raises:
            ValidationException: Discount negative or larger than the subtotal
        """
        subtotal = items_subtotal(items, self.currency)
        discount = discount or Money.zero(self.currency)
        delivery_fee = delivery_fee or Money.zero(self.currency)

        if discount.is_negative or discount > subtotal:
            raise ValidationException(
                message="Discount must be between 0 and the items subtotal",
                field="discount",
                invalid_value=discount.amount,
                expected_format=f"0..{subtotal.amount}",
            )
        if delivery_fee.is_negative:
            raise ValidationException(
                message="Delivery fee cannot be negative", field="delivery_fee", invalid_value=delivery_fee.amount
            )

        total = subtotal - discount
        return OrderTotals(
            subtotal=subtotal,
            discount=discount,
            delivery_fee=delivery_fee,
            total_amount=total,
            final_amount=total + delivery_fee,
        )

    def calculate_replacement(
        self,
        outgoing: Iterable[OrderItemDomain],
        incoming: Iterable[OrderItemDomain],
        delivery_fee: Optional[Money] = None,
        price_adjustment: Optional[Money] = None,
    ) -> OrderTotals:
        """
        Replacement: the customer hands back ``outgoing`` and receives ``incoming``.

        The price difference is incoming - outgoing unless a manual adjustment
        is given. The final amount may be negative.
        """
        outgoing_total = items_subtotal(outgoing, self.currency)
        incoming_total = items_subtotal(incoming, self.currency)
        delivery_fee = delivery_fee or Money.zero(self.currency)

        if price_adjustment is not None and not price_adjustment.is_zero:
            price_difference = price_adjustment
        else:
            price_difference = incoming_total - outgoing_total

        return OrderTotals(
            subtotal=incoming_total,
            discount=Money.zero(self.currency),
            delivery_fee=delivery_fee,
            total_amount=price_difference,
            final_amount=price_difference + delivery_fee,
            price_difference=price_difference,
        )

    def calculate_return(
        self, original_order: Optional[OrderDomain], refund_amount: Optional[Money] = None
    ) -> OrderTotals:
        """
        Return: refund defaults to what the customer paid for the products.

        ``total_amount`` is the refund and ``final_amount`` its negative.
        """
        suggested = Money.zero(self.currency)
        if original_order is not None:
            suggested = (original_order.final_amount - original_order.delivery_fee).max_zero()

        refund = suggested if refund_amount is None else refund_amount
        if refund.is_negative:
            raise ValidationException(
                message="Refund amount cannot be negative", field="refund_amount", invalid_value=refund.amount
            )

        zero = Money.zero(self.currency)
        return OrderTotals(
            subtotal=zero,
            discount=zero,
            delivery_fee=zero,
            total_amount=refund,
            final_amount=-refund,
            refund_amount=refund,
        )

    @staticmethod
    def apply_price_change(original_total: Money, new_total: Money) -> PriceChange:
        """A lower total becomes a discount, a higher one a price increase."""
        zero = Money.zero(original_total.currency)
        if new_total < original_total:
            return PriceChange(original_total - new_total, zero, PriceChangeType.DISCOUNT)
        if new_total > original_total:
            return PriceChange(zero, new_total - original_total, PriceChangeType.INCREASE)
        return PriceChange(zero, zero, None)
