"""
OrderValidator service for validating order requests before they are priced
and stored.

This service follows SRP (Single Responsibility Principle) by focusing only on
validation logic.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from app.domain.models import DeliveryPartner, ItemDirection, OrderType
from app.utils.error_handler import ValidationException
from app.utils.phone_utils import is_valid_local_phone

logger = logging.getLogger(__name__)


class OrderValidator:
    """
    Validates order requests.

    Responsibilities:
    - Required customer fields and phone format
    - Order type and delivery partner
    - Line items (ids, quantities, prices, replacement directions)
    """

    REQUIRED_FIELDS = ("customer_name", "customer_phone", "items")

    def validate(self, request: dict[str, Any]) -> dict[str, Any]:
        """
        Validates an order request and returns it.

        Raises:
            ValidationException: If validation fails
        """
        self._validate_required_fields(request)
        self._validate_type_and_partner(request)
        self._validate_phone(request)
        self._validate_items(request)

        logger.debug(f"Order request for {request['customer_name']} validation passed")
        return request

    def _validate_required_fields(self, request: dict[str, Any]) -> None:
        for field in self.REQUIRED_FIELDS:
            value = request.get(field)
            if not value or (isinstance(value, str) and not value.strip()):
                raise ValidationException(
                    message=f"Missing required field: {field}",
                    field=field,
                    invalid_value=value,
                )

    def _validate_type_and_partner(self, request: dict[str, Any]) -> None:
        order_type = request.get("order_type") or OrderType.REGULAR
        if order_type not in OrderType.ALL:
            raise ValidationException(
                message=f"Invalid order type: {order_type}",
                field="order_type",
                invalid_value=order_type,
                expected_format=" | ".join(OrderType.ALL),
            )

        partner = request.get("delivery_partner") or DeliveryPartner.LOCAL
        if partner not in DeliveryPartner.ALL:
            raise ValidationException(
                message=f"Invalid delivery partner: {partner}",
                field="delivery_partner",
                invalid_value=partner,
                expected_format=" | ".join(DeliveryPartner.ALL),
            )

    def _validate_phone(self, request: dict[str, Any]) -> None:
        for field in ("customer_phone", "customer_phone2"):
            phone = request.get(field)
            if phone and not is_valid_local_phone(phone):
                raise ValidationException(
                    message=f"Invalid phone number: {phone}",
                    field=field,
                    invalid_value=phone,
                    expected_format="07XXXXXXXXX",
                )

    def _validate_items(self, request: dict[str, Any]) -> None:
        items = request["items"]
        if not isinstance(items, list):
            raise ValidationException(message="Items must be a list", field="items", invalid_value=type(items).__name__)

        for index, item in enumerate(items):
            for key in ("product_id", "variant_id"):
                if not item.get(key):
                    raise ValidationException(
                        message=f"Item {index} is missing {key}", field=f"items[{index}].{key}", invalid_value=None
                    )

            quantity = item.get("quantity", 1)
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
                raise ValidationException(
                    message=f"Item {index} quantity must be a positive integer",
                    field=f"items[{index}].quantity",
                    invalid_value=quantity,
                )

            try:
                price = Decimal(str(item.get("unit_price", 0)))
            except InvalidOperation as e:
                raise ValidationException(
                    message=f"Item {index} has an invalid price",
                    field=f"items[{index}].unit_price",
                    invalid_value=item.get("unit_price"),
                ) from e
            if price < 0:
                raise ValidationException(
                    message=f"Item {index} price cannot be negative",
                    field=f"items[{index}].unit_price",
                    invalid_value=price,
                )

        if (request.get("order_type") or OrderType.REGULAR) == OrderType.REPLACEMENT:
            directions = {item.get("item_direction") for item in items}
            if not {ItemDirection.OUTGOING, ItemDirection.INCOMING} <= directions:
                raise ValidationException(
                    message="Replacement orders need outgoing and incoming items",
                    field="items",
                    invalid_value=sorted(d for d in directions if d),
                    expected_format="item_direction: outgoing | incoming",
                )
