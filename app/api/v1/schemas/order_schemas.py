"""
Modelos Pydantic para la API de pedidos.

Los montos se expresan en dinares iraquíes (sin decimales significativos).
Las respuestas siguen el formato ``{"status", "data", "message"}`` del resto
de la API.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.domain.models import DeliveryPartner, ItemDirection, OrderType


class OrderItemRequest(BaseModel):
    """Línea de pedido enviada por el back-office."""

    product_id: str
    variant_id: str
    quantity: int = Field(1, ge=1)
    unit_price: Decimal = Field(..., ge=0)
    cost_price: Optional[Decimal] = Field(None, ge=0)
    product_name: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None
    barcode: Optional[str] = None
    item_direction: Optional[str] = Field(None, description="outgoing | incoming (solo en استبدال)")

    @field_validator("item_direction")
    @classmethod
    def validate_direction(cls, v):
        if v is not None and v not in ItemDirection.ALL:
            raise ValueError(f"item_direction debe ser uno de: {ItemDirection.ALL}")
        return v


class CreateOrderRequest(BaseModel):
    """Modelo para crear un pedido (normal, استبدال o ارجاع)."""

    customer_name: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=1)
    customer_phone2: Optional[str] = None
    customer_city: Optional[str] = None
    customer_province: Optional[str] = None
    customer_address: Optional[str] = None
    city_id: Optional[str] = None
    region_id: Optional[str] = None
    order_type: str = OrderType.REGULAR
    delivery_partner: str = DeliveryPartner.LOCAL
    items: List[OrderItemRequest] = Field(..., min_length=1)
    discount: Optional[Decimal] = Field(None, ge=0)
    delivery_fee: Optional[Decimal] = None
    price_adjustment: Optional[Decimal] = None
    refund_amount: Optional[Decimal] = Field(None, ge=0)
    original_order_id: Optional[str] = None
    created_by: Optional[str] = None
    notes: Optional[str] = None
    apply_loyalty: bool = True

    @field_validator("order_type")
    @classmethod
    def validate_order_type(cls, v):
        if v not in OrderType.ALL:
            raise ValueError(f"order_type debe ser uno de: {OrderType.ALL}")
        return v

    def to_request(self) -> Dict[str, Any]:
        data = self.model_dump(exclude_none=True)
        data["items"] = [item.model_dump(exclude_none=True) for item in self.items]
        return data


class UpdateOrderRequest(BaseModel):
    """Campos editables de un pedido; solo se aplican los enviados."""

    customer_name: Optional[str] = Field(None, min_length=1)
    customer_phone: Optional[str] = None
    customer_phone2: Optional[str] = None
    customer_city: Optional[str] = None
    customer_province: Optional[str] = None
    customer_address: Optional[str] = None
    city_id: Optional[str] = None
    region_id: Optional[str] = None
    notes: Optional[str] = None
    items: Optional[List[OrderItemRequest]] = Field(None, min_length=1)
    discount: Optional[Decimal] = Field(None, ge=0)
    delivery_fee: Optional[Decimal] = None
    price_adjustment: Optional[Decimal] = None
    refund_amount: Optional[Decimal] = Field(None, ge=0)
    total_amount: Optional[Decimal] = Field(None, ge=0)

    def to_changes(self) -> Dict[str, Any]:
        data = self.model_dump(exclude_none=True)
        if self.items is not None:
            data["items"] = [item.model_dump(exclude_none=True) for item in self.items]
        return data


class PartialDeliveryRequest(BaseModel):
    """Entrega parcial: ids de las líneas entregadas y monto cobrado."""

    delivered_item_ids: List[str] = Field(..., min_length=1)
    final_price: Optional[Decimal] = Field(None, ge=0)


class ReturnStatusRequest(BaseModel):
    delivery_status: str = Field(..., description="Estado del socio (21 = en camino, 17 = devuelto al comerciante)")


class InvoiceReceivedRequest(BaseModel):
    """Pedidos liquidados por una factura del socio."""

    order_ids: List[str] = Field(..., min_length=1)
    invoice_id: Optional[str] = None


class ParseOrderTextRequest(BaseModel):
    """Texto libre pegado por el empleado."""

    text: str = Field(..., min_length=1)


class LoyaltyDiscountRequest(BaseModel):
    phone: str = Field(..., min_length=1)
    subtotal: Decimal = Field(..., ge=0)
    delivery_fee: Optional[Decimal] = Field(None, ge=0)
    employee_id: Optional[str] = None


class VerifyPointsRequest(BaseModel):
    phone: str = Field(..., min_length=1)
    stored_points: Optional[int] = Field(None, ge=0)
    employee_id: Optional[str] = None


class DeliverySyncRequest(BaseModel):
    """Parámetros de una sincronización manual con el socio de entrega."""

    partner: str = DeliveryPartner.ALWASEET
    token: Optional[str] = Field(None, description="Token del comerciante (default: config)")

    @field_validator("partner")
    @classmethod
    def validate_partner(cls, v):
        if v not in (DeliveryPartner.ALWASEET, DeliveryPartner.MODON):
            raise ValueError("partner debe ser 'alwaseet' o 'modon'")
        return v


class AddressParseRequest(BaseModel):
    address: str = Field(..., min_length=1)

