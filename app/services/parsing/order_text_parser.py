"""
Parser de pedidos escritos en texto libre (mensajes de Telegram).

Formato:
    1. nombre del cliente
    2. ciudad - dirección
    3. teléfono
    4. productos ("برشلونة ازرق M"), con #استبدال o #ترجيع para cambios y devoluciones
    5+. líneas opcionales: precio, diferencia de precio, gastos de envío o reembolso

Ejemplo de cambio:
    برشلونة ازرق M #استبدال برشلونة ابيض S
"""

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from app.core.config import get_settings
from app.domain.models import OrderType
from app.utils.error_handler import ValidationException
from app.utils.phone_utils import to_ascii_digits

settings = get_settings()
logger = logging.getLogger(__name__)

REPLACEMENT_TAGS = ("استبدال", "استبذال", "أستبدال", "تبديل")
RETURN_TAGS = ("ارجاع", "ترجيع", "استرجاع", "إرجاع")

REPLACEMENT_TAG_PATTERN = re.compile(r"#(" + "|".join(REPLACEMENT_TAGS) + r")")
RETURN_TAG_PATTERN = re.compile(r"#(" + "|".join(RETURN_TAGS) + r")")
REPLACEMENT_LINE_PATTERN = re.compile(r"(.*?)\s*#(?:" + "|".join(REPLACEMENT_TAGS) + r")\s*(.*)")
RETURN_LINE_PATTERN = re.compile(r"(.*?)\s*#(?:" + "|".join(RETURN_TAGS) + r")")

LOCATION_SEPARATOR = re.compile(r"[-–—]")
PHONE_PATTERN = re.compile(r"\b(07[3-9]\d{8}|00964[37]\d{9}|964[37]\d{9})\b")
VALID_PHONE_PATTERN = re.compile(r"^07\d{9}$")

MIN_LINES = 4
# Valores de la línea 5 fuera de [0, 10000] son diferencias de precio, no envío
MAX_DELIVERY_FEE_VALUE = Decimal("10000")


@dataclass
class ParsedProduct:
    name: str
    color: Optional[str] = None
    size: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "color": self.color, "size": self.size}


@dataclass
class ParsedCustomer:
    name: str
    phone: str
    city: str
    address: str

    @property
    def phone_is_valid(self) -> bool:
        return bool(VALID_PHONE_PATTERN.match(self.phone))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "phone": self.phone,
            "phone_valid": self.phone_is_valid,
            "city": self.city,
            "address": self.address,
        }


@dataclass
class ParsedOrder:
    """Resultado del parser; los campos usados dependen de ``order_type``."""

    order_type: str
    customer: ParsedCustomer
    products: List[ParsedProduct] = field(default_factory=list)
    outgoing_product: Optional[ParsedProduct] = None
    incoming_product: Optional[ParsedProduct] = None
    delivery_fee: Optional[Decimal] = None
    price_adjustment: Decimal = Decimal("0")
    refund_amount: Decimal = Decimal("0")
    total_price: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_type": self.order_type,
            "customer": self.customer.to_dict(),
            "products": [product.to_dict() for product in self.products],
            "outgoing_product": self.outgoing_product.to_dict() if self.outgoing_product else None,
            "incoming_product": self.incoming_product.to_dict() if self.incoming_product else None,
            "delivery_fee": self.delivery_fee,
            "price_adjustment": self.price_adjustment,
            "refund_amount": self.refund_amount,
            "total_price": self.total_price,
        }


def detect_order_type(text: str) -> str:
    """Detecta el tipo de pedido por su hashtag (cambio, devolución o normal)."""
    if REPLACEMENT_TAG_PATTERN.search(text):
        return OrderType.REPLACEMENT
    if RETURN_TAG_PATTERN.search(text):
        return OrderType.RETURN
    return OrderType.REGULAR


def parse_product_string(text: str) -> ParsedProduct:
    """'برشلونة ازرق M' -> nombre, color, talla."""
    parts = text.strip().split()
    if not parts:
        return ParsedProduct(name="")
    return ParsedProduct(
        name=parts[0],
        color=parts[1] if len(parts) > 1 else None,
        size=parts[2] if len(parts) > 2 else None,
    )


def parse_amount(text: Optional[str], allow_negative: bool = True) -> Decimal:
    """Número de una línea libre ('15,000 د.ع' -> 15000); 0 si no hay número."""
    if not text:
        return Decimal("0")
    allowed = r"[^\d.-]" if allow_negative else r"[^\d.]"
    cleaned = re.sub(allowed, "", to_ascii_digits(text))
    try:
        return Decimal(cleaned) if cleaned else Decimal("0")
    except InvalidOperation:
        return Decimal("0")


def extract_phone(text: str) -> str:
    """Normaliza el teléfono a 07XXXXXXXXX; si no se reconoce se devuelve tal cual."""
    digits = to_ascii_digits(text).replace(" ", "")
    match = PHONE_PATTERN.search(digits)
    if not match:
        return text.strip()

    phone = match.group(1)
    if phone.startswith("00964"):
        return "0" + phone[5:]
    if phone.startswith("964"):
        return "0" + phone[3:]
    return phone


def _split_lines(text: str) -> List[str]:
    lines = [line.strip() for line in (text or "").strip().split("\n")]
    lines = [line for line in lines if line]
    if len(lines) < MIN_LINES:
        raise ValidationException(
            message=f"El pedido necesita al menos {MIN_LINES} líneas",
            field="text",
            invalid_value=len(lines),
            expected_format="nombre / ciudad - dirección / teléfono / productos",
        )
    return lines


def _parse_customer(lines: List[str]) -> ParsedCustomer:
    location = LOCATION_SEPARATOR.split(lines[1])
    city = location[0].strip()
    address = " - ".join(part.strip() for part in location[1:]).strip()
    return ParsedCustomer(name=lines[0], phone=extract_phone(lines[2]), city=city, address=address)


def parse_replacement_order(text: str) -> ParsedOrder:
    """
    Pedido de cambio.

    La línea 4 lleva el producto que devuelve el cliente antes del hashtag y
    el nuevo después. La línea 5 es el envío, salvo que sea negativa o mayor
    que 10000: entonces es la diferencia de precio y el envío va en la línea 6.
    """
    lines = _split_lines(text)
    match = REPLACEMENT_LINE_PATTERN.match(lines[3])
    if not match:
        raise ValidationException(
            message="Falta el hashtag de cambio en la línea de productos", field="products", invalid_value=lines[3]
        )

    default_fee = Decimal(settings.DEFAULT_DELIVERY_FEE)
    delivery_fee = default_fee
    price_adjustment = Decimal("0")
    if len(lines) > 4:
        value = parse_amount(lines[4])
        if value < 0 or value > MAX_DELIVERY_FEE_VALUE:
            price_adjustment = value
            delivery_fee = parse_amount(lines[5], allow_negative=False) if len(lines) > 5 else default_fee
            delivery_fee = delivery_fee or default_fee
        else:
            delivery_fee = value

    return ParsedOrder(
        order_type=OrderType.REPLACEMENT,
        customer=_parse_customer(lines),
        outgoing_product=parse_product_string(match.group(1)),
        incoming_product=parse_product_string(match.group(2)),
        delivery_fee=delivery_fee,
        price_adjustment=price_adjustment,
    )


def parse_return_order(text: str) -> ParsedOrder:
    """Pedido de devolución: producto + #ترجيع en la línea 4, reembolso en la 5."""
    lines = _split_lines(text)
    match = RETURN_LINE_PATTERN.match(lines[3])
    if not match:
        raise ValidationException(
            message="Falta el hashtag de devolución en la línea de productos", field="products", invalid_value=lines[3]
        )

    product = parse_product_string(match.group(1))
    return ParsedOrder(
        order_type=OrderType.RETURN,
        customer=_parse_customer(lines),
        products=[product],
        outgoing_product=product,
        refund_amount=parse_amount(lines[4], allow_negative=False) if len(lines) > 4 else Decimal("0"),
    )


def parse_regular_order(text: str) -> ParsedOrder:
    """
    Pedido normal: una línea por producto desde la 4; una última línea
    numérica, si existe, es el precio total.
    """
    lines = _split_lines(text)
    product_lines = lines[3:]

    total_price = None
    if len(product_lines) > 1 and re.fullmatch(r"[\d.,\s]+(?:د\.?ع|دينار)?", to_ascii_digits(product_lines[-1])):
        total_price = parse_amount(product_lines.pop(), allow_negative=False)

    return ParsedOrder(
        order_type=OrderType.REGULAR,
        customer=_parse_customer(lines),
        products=[parse_product_string(line) for line in product_lines],
        total_price=total_price,
    )


def parse_order_text(text: str) -> ParsedOrder:
    """Detecta el tipo de pedido y lo analiza."""
    order_type = detect_order_type(text or "")
    if order_type == OrderType.REPLACEMENT:
        parsed = parse_replacement_order(text)
    elif order_type == OrderType.RETURN:
        parsed = parse_return_order(text)
    else:
        parsed = parse_regular_order(text)

    if not parsed.customer.phone_is_valid:
        logger.warning(f"⚠️ Parsed order with invalid phone: {parsed.customer.phone}")
    logger.debug(f"Parsed {parsed.order_type} order for {parsed.customer.name}")
    return parsed
