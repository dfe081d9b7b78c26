"""Free-text order parsing."""

from .order_text_parser import (
    ParsedCustomer,
    ParsedOrder,
    ParsedProduct,
    detect_order_type,
    parse_order_text,
    parse_product_string,
    parse_regular_order,
    parse_replacement_order,
    parse_return_order,
)

__all__ = [
    "ParsedCustomer",
    "ParsedOrder",
    "ParsedProduct",
    "detect_order_type",
    "parse_order_text",
    "parse_product_string",
    "parse_regular_order",
    "parse_replacement_order",
    "parse_return_order",
]
