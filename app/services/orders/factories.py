"""
OrderFactory - Factory pattern for creating domain objects (OCP).

This factory encapsulates object creation logic, making it easier
to modify without changing client code.
"""

from typing import Any, Dict, List

from app.core.config import get_settings
from app.domain.models import DeliveryPartner, OrderDomain, OrderItemDomain, OrderStatus, OrderType
from app.domain.value_objects.money import Money
from app.services.orders.calculators import OrderTotals

settings = get_settings()


class OrderFactory:
    """Factory for creating domain objects with proper defaults."""

    @staticmethod
    def create_items(raw_items: List[Dict[str, Any]], currency: str = settings.CURRENCY_CODE) -> List[OrderItemDomain]:
        return [OrderItemDomain.from_dict(item, currency) for item in raw_items]

    @staticmethod
    def create_order(
        request: Dict[str, Any],
        items: List[OrderItemDomain],
        totals: OrderTotals,
        **kwargs,
    ) -> OrderDomain:
        """
        Create an OrderDomain from a validated request and its totals.

        Args:
            request: Validated order request
            items: Order lines
            totals: Output of the totals calculator
            **kwargs: Fields overriding the request (resolved city, links...)

        Returns:
            OrderDomain: New order, not stored yet
        """
        currency = totals.final_amount.currency
        fields = {
            "customer_name": request["customer_name"].strip(),
            "customer_phone": request["customer_phone"],
            "customer_phone2": request.get("customer_phone2"),
            "customer_city": request.get("customer_city"),
            "customer_province": request.get("customer_province"),
            "customer_address": request.get("customer_address"),
            "city_id": request.get("city_id"),
            "region_id": request.get("region_id"),
            "order_type": request.get("order_type") or OrderType.REGULAR,
            "status": OrderStatus.PENDING,
            "delivery_partner": request.get("delivery_partner") or DeliveryPartner.LOCAL,
            "created_by": request.get("created_by"),
            "original_order_id": request.get("original_order_id"),
            "notes": request.get("notes") or "",
            "items": items,
            "total_amount": totals.total_amount,
            "sales_amount": totals.total_amount,
            "discount": totals.discount,
            "delivery_fee": totals.delivery_fee,
            "final_amount": totals.final_amount,
            "refund_amount": totals.refund_amount or Money.zero(currency),
        }
        fields.update(kwargs)
        return OrderDomain(**fields)
