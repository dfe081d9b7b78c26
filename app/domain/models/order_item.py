"""
Order item domain model.

Represents a single product variant line on an order.
"""

from dataclasses import dataclass, field
from typing import Any

from app.domain.value_objects.money import Money


class ItemDirection:
    """Direction of an item on a replacement order, seen from the customer."""

    OUTGOING = "outgoing"  # leaves the customer (collected back)
    INCOMING = "incoming"  # goes to the customer

    ALL = (OUTGOING, INCOMING)


class ItemStatus:
    """Delivery outcome of a single line after a partial delivery."""

    DELIVERED = "delivered"
    PENDING_RETURN = "pending_return"


@dataclass
class OrderItemDomain:
    """
    Domain model representing an order line.

    Attributes:
        product_id: Product identifier
        variant_id: Product variant identifier (color + size)
        quantity: Units ordered, always positive
        unit_price: Selling price per unit
        cost_price: Cost per unit, taken from the variant or the product
        product_name: Display name of the product
        color: Variant color name
        size: Variant size name
        item_direction: Only set on replacement orders
        item_status: Set per line once a partial delivery is booked
        barcode: Variant barcode if known
        id: Item ID (None for new items)
    """

    product_id: str
    variant_id: str
    quantity: int
    unit_price: Money
    cost_price: Money = field(default_factory=Money.zero)
    product_name: str = ""
    color: str = ""
    size: str = ""
    item_direction: str | None = None
    item_status: str | None = None
    barcode: str | None = None
    id: str | None = None

    def __post_init__(self) -> None:
        if not self.product_id:
            raise ValueError("Product id is required")
        if not self.variant_id:
            raise ValueError("Variant id is required")
        if self.quantity <= 0:
            raise ValueError(f"Quantity must be positive: {self.quantity}")
        if self.unit_price.is_negative:
            raise ValueError(f"Unit price cannot be negative: {self.unit_price.amount}")
        if self.item_direction is not None and self.item_direction not in ItemDirection.ALL:
            raise ValueError(f"Invalid item direction: {self.item_direction}")

    @property
    def cart_key(self) -> str:
        """Key used to merge duplicated product/variant lines."""
        return f"{self.product_id}-{self.variant_id}"

    @property
    def is_delivered(self) -> bool:
        return self.item_status == ItemStatus.DELIVERED

    @property
    def total_price(self) -> Money:
        return self.unit_price * self.quantity

    @property
    def total_cost(self) -> Money:
        return self.cost_price * self.quantity

    @property
    def description(self) -> str:
        return " ".join(part for part in (self.product_name, self.color, self.size) if part)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price.amount,
            "total_price": self.total_price.amount,
            "cost_price": self.cost_price.amount,
            "product_name": self.product_name,
            "color": self.color,
            "size": self.size,
            "item_direction": self.item_direction,
            "item_status": self.item_status,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], currency: str = "IQD") -> "OrderItemDomain":
        return cls(
            id=data.get("id"),
            product_id=str(data["product_id"]),
            variant_id=str(data["variant_id"]),
            quantity=int(data.get("quantity", 1)),
            unit_price=Money.from_value(data.get("unit_price", data.get("price")), currency),
            cost_price=Money.from_value(data.get("cost_price"), currency),
            product_name=data.get("product_name") or "",
            color=data.get("color") or "",
            size=data.get("size") or "",
            item_direction=data.get("item_direction"),
            item_status=data.get("item_status"),
            barcode=data.get("barcode"),
        )
