"""
Order domain model (Aggregate Root).

Represents a customer order with its items, pricing breakdown and courier
metadata. Regular, replacement (exchange) and return orders share this model;
``order_type`` selects which invariants apply.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from app.domain.value_objects.money import Money
from app.utils.phone_utils import normalize_phone

from .order_item import ItemDirection, OrderItemDomain


class OrderType:
    """Order type constants."""

    REGULAR = "regular"
    REPLACEMENT = "replacement"
    RETURN = "return"

    ALL = (REGULAR, REPLACEMENT, RETURN)


class OrderStatus:
    """Internal order status constants."""

    PENDING = "pending"
    SHIPPED = "shipped"
    DELIVERY = "delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    RETURNED = "returned"
    RETURNED_IN_STOCK = "returned_in_stock"
    RETURN_PENDING = "return_pending"
    PARTIAL_DELIVERY = "partial_delivery"
    CANCELLED = "cancelled"

    ALL = (
        PENDING,
        SHIPPED,
        DELIVERY,
        DELIVERED,
        COMPLETED,
        RETURNED,
        RETURNED_IN_STOCK,
        RETURN_PENDING,
        PARTIAL_DELIVERY,
        CANCELLED,
    )

    # Orders in these states still hold a stock reservation
    RESERVING = (PENDING, SHIPPED, DELIVERY, RETURNED)

    # Orders in these states no longer hold stock
    STOCK_RELEASED = (COMPLETED, DELIVERED, RETURNED_IN_STOCK)


class DeliveryPartner:
    """Delivery partner constants."""

    LOCAL = "local"
    ALWASEET = "alwaseet"
    MODON = "modon"

    ALL = (LOCAL, ALWASEET, MODON)


class PriceChangeType:
    DISCOUNT = "discount"
    INCREASE = "increase"


@dataclass
class OrderDomain:
    """
    Domain model representing an order (Aggregate Root).

    Monetary fields:
        total_amount: products after discount/increase (no delivery)
        discount: amount removed from the items subtotal
        price_increase: amount added on top of the items subtotal
        delivery_fee: courier fee charged to the customer
        final_amount: what the courier collects (total_amount + delivery_fee);
            negative on return orders, where the merchant pays the customer
        refund_amount: money paid back on a return order
    """

    customer_name: str
    customer_phone: str
    order_type: str = OrderType.REGULAR
    status: str = OrderStatus.PENDING
    delivery_partner: str = DeliveryPartner.LOCAL
    delivery_status: str | None = None
    items: list[OrderItemDomain] = field(default_factory=list)
    total_amount: Money = field(default_factory=Money.zero)
    discount: Money = field(default_factory=Money.zero)
    price_increase: Money = field(default_factory=Money.zero)
    price_change_type: str | None = None
    sales_amount: Money = field(default_factory=Money.zero)
    delivery_fee: Money = field(default_factory=Money.zero)
    final_amount: Money = field(default_factory=Money.zero)
    refund_amount: Money = field(default_factory=Money.zero)
    customer_phone2: str | None = None
    customer_city: str | None = None
    customer_province: str | None = None
    customer_address: str | None = None
    city_id: str | None = None
    region_id: str | None = None
    tracking_number: str | None = None
    qr_id: str | None = None
    delivery_partner_order_id: str | None = None
    order_number: str | None = None
    created_by: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    original_order_id: str | None = None
    replacement_pair_id: str | None = None
    receipt_received: bool = False
    notes: str = ""
    merchant_notes: str = ""
    id: str | None = None

    def __post_init__(self) -> None:
        if not self.customer_name or not self.customer_name.strip():
            raise ValueError("Customer name is required")
        if not self.customer_phone:
            raise ValueError("Customer phone is required")
        if self.order_type not in OrderType.ALL:
            raise ValueError(f"Invalid order type: {self.order_type}")
        if self.status not in OrderStatus.ALL:
            raise ValueError(f"Invalid order status: {self.status}")
        if self.delivery_partner not in DeliveryPartner.ALL:
            raise ValueError(f"Invalid delivery partner: {self.delivery_partner}")

        currencies = {
            money.currency
            for money in (
                self.total_amount,
                self.discount,
                self.price_increase,
                self.sales_amount,
                self.delivery_fee,
                self.final_amount,
                self.refund_amount,
            )
        }
        if len(currencies) > 1:
            raise ValueError("All monetary values must have the same currency")

        if self.delivery_fee.is_negative and self.order_type == OrderType.REGULAR:
            raise ValueError("Delivery fee cannot be negative on regular orders")
        if self.discount.is_negative or self.price_increase.is_negative:
            raise ValueError("Discount and price increase must be non-negative")
        if self.refund_amount.is_negative:
            raise ValueError("Refund amount cannot be negative")

    @property
    def currency(self) -> str:
        return self.final_amount.currency

    @property
    def is_return(self) -> bool:
        return self.order_type == OrderType.RETURN

    @property
    def is_replacement(self) -> bool:
        return self.order_type == OrderType.REPLACEMENT

    @property
    def normalized_phone(self) -> str:
        return normalize_phone(self.customer_phone)

    @property
    def items_subtotal(self) -> Money:
        """Sum of unit price x quantity over the items sent to the customer."""
        total = Money.zero(self.currency)
        for item in self.items:
            if item.item_direction != ItemDirection.OUTGOING:
                total = total + item.total_price
        return total

    @property
    def products_amount(self) -> Money:
        """Amount collected for the products alone (final minus delivery)."""
        return self.final_amount - self.delivery_fee

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def sent_items(self) -> list[OrderItemDomain]:
        """Items that leave the stock for the customer."""
        return [item for item in self.items if item.item_direction != ItemDirection.OUTGOING]

    @property
    def reserved_items(self) -> list[OrderItemDomain]:
        """Sent items still holding a reservation (not sold by a partial delivery)."""
        return [item for item in self.sent_items if not item.is_delivered]

    @property
    def collected_items(self) -> list[OrderItemDomain]:
        """Items collected back from the customer on a replacement."""
        return [item for item in self.items if item.item_direction == ItemDirection.OUTGOING]

    @property
    def display_reference(self) -> str:
        return self.tracking_number or self.order_number or str(self.id or "")

    def add_item(self, item: OrderItemDomain) -> None:
        """
        Add an item to the order.

        Raises:
            ValueError: If item currency doesn't match order currency
        """
        if item.unit_price.currency != self.currency:
            raise ValueError(
                f"Item currency ({item.unit_price.currency}) doesn't match order currency ({self.currency})"
            )
        self.items.append(item)

    def append_merchant_note(self, note: str) -> None:
        self.merchant_notes = f"{self.merchant_notes}\n{note}" if self.merchant_notes else note

    def append_note(self, note: str) -> None:
        self.notes = f"{self.notes}\n{note}" if self.notes else note

    def to_dict(self) -> dict[str, Any]:
        """Convert order to dictionary for persistence."""
        return {
            "id": self.id,
            "order_number": self.order_number,
            "order_type": self.order_type,
            "status": self.status,
            "delivery_partner": self.delivery_partner,
            "delivery_status": self.delivery_status,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_phone2": self.customer_phone2,
            "customer_city": self.customer_city,
            "customer_province": self.customer_province,
            "customer_address": self.customer_address,
            "city_id": self.city_id,
            "region_id": self.region_id,
            "total_amount": self.total_amount.amount,
            "discount": self.discount.amount,
            "price_increase": self.price_increase.amount,
            "price_change_type": self.price_change_type,
            "sales_amount": self.sales_amount.amount,
            "delivery_fee": self.delivery_fee.amount,
            "final_amount": self.final_amount.amount,
            "refund_amount": self.refund_amount.amount,
            "tracking_number": self.tracking_number,
            "qr_id": self.qr_id,
            "delivery_partner_order_id": self.delivery_partner_order_id,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "original_order_id": self.original_order_id,
            "replacement_pair_id": self.replacement_pair_id,
            "receipt_received": self.receipt_received,
            "notes": self.notes,
            "merchant_notes": self.merchant_notes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], currency: str = "IQD") -> "OrderDomain":
        """Create order from a database row or API payload."""
        return cls(
            id=str(data["id"]) if data.get("id") is not None else None,
            order_number=data.get("order_number"),
            order_type=data.get("order_type") or OrderType.REGULAR,
            status=data.get("status") or OrderStatus.PENDING,
            delivery_partner=data.get("delivery_partner") or DeliveryPartner.LOCAL,
            delivery_status=str(data["delivery_status"]) if data.get("delivery_status") is not None else None,
            customer_name=data["customer_name"],
            customer_phone=data["customer_phone"],
            customer_phone2=data.get("customer_phone2"),
            customer_city=data.get("customer_city"),
            customer_province=data.get("customer_province"),
            customer_address=data.get("customer_address"),
            city_id=str(data["city_id"]) if data.get("city_id") is not None else None,
            region_id=str(data["region_id"]) if data.get("region_id") is not None else None,
            total_amount=Money.from_value(data.get("total_amount"), currency),
            discount=Money.from_value(data.get("discount"), currency),
            price_increase=Money.from_value(data.get("price_increase"), currency),
            price_change_type=data.get("price_change_type"),
            sales_amount=Money.from_value(data.get("sales_amount"), currency),
            delivery_fee=Money.from_value(data.get("delivery_fee"), currency),
            final_amount=Money.from_value(data.get("final_amount"), currency),
            refund_amount=Money.from_value(data.get("refund_amount"), currency),
            tracking_number=data.get("tracking_number"),
            qr_id=str(data["qr_id"]) if data.get("qr_id") is not None else None,
            delivery_partner_order_id=(
                str(data["delivery_partner_order_id"]) if data.get("delivery_partner_order_id") is not None else None
            ),
            created_by=str(data["created_by"]) if data.get("created_by") is not None else None,
            created_at=data.get("created_at") or datetime.now(UTC),
            original_order_id=str(data["original_order_id"]) if data.get("original_order_id") else None,
            replacement_pair_id=str(data["replacement_pair_id"]) if data.get("replacement_pair_id") else None,
            receipt_received=bool(data.get("receipt_received", False)),
            notes=data.get("notes") or "",
            merchant_notes=data.get("merchant_notes") or "",
            items=[OrderItemDomain.from_dict(item, currency) for item in data.get("items", [])],
        )
