"""
OrderOrchestrator - Main coordinator for order capture and edits (SOLID compliant).

This orchestrator follows:
- SRP: Only coordinates the order flows
- DIP: Depends on the service protocols in ``interfaces``, injected via constructor
"""

import logging
from typing import Any, Dict, List, Optional

from app.core.config import get_settings
from app.db.repositories import OrderRepository
from app.domain.models import ItemDirection, OrderDomain, OrderType, PriceChangeType
from app.domain.value_objects.money import Money
from app.services.delivery.cities import address_parser, city_alias_resolver
from app.services.delivery.reservation_policy import should_release_stock
from app.services.delivery.statuses import DeliveryStatusRegistry, status_registry
from app.services.loyalty import calculate_loyalty_discount
from app.services.orders.calculators import OrderTotals, PriceChange, TotalsCalculator
from app.services.orders.factories import OrderFactory
from app.services.orders.interfaces import IInventoryManager, ILoyaltyService, IOrderLinker, IOrderValidator
from app.utils.error_handler import AppException, OrderNotFoundException, OrderStateException, ValidationException
from app.utils.order_lock import OrderLock

settings = get_settings()
logger = logging.getLogger(__name__)

# Request keys that map 1:1 to order columns on update
EDITABLE_FIELDS = (
    "customer_name",
    "customer_phone",
    "customer_phone2",
    "customer_city",
    "customer_province",
    "customer_address",
    "city_id",
    "region_id",
    "notes",
)

# Request keys that force a totals recalculation
TOTALS_FIELDS = ("items", "discount", "delivery_fee", "price_adjustment", "refund_amount", "total_amount")


class OrderOrchestrator:
    """
    Orchestrates order creation, edition and deletion.

    Each collaborator has a single responsibility and is injected via constructor.
    """

    def __init__(
        self,
        validator: IOrderValidator,
        order_repository: OrderRepository,
        inventory_manager: IInventoryManager,
        loyalty_service: ILoyaltyService,
        linker: IOrderLinker,
        calculator: Optional[TotalsCalculator] = None,
        registry: DeliveryStatusRegistry = status_registry,
        lock_factory=OrderLock,
    ):
        self.validator = validator
        self.order_repository = order_repository
        self.inventory_manager = inventory_manager
        self.loyalty_service = loyalty_service
        self.linker = linker
        self.calculator = calculator or TotalsCalculator(settings.CURRENCY_CODE)
        self.registry = registry
        self.lock_factory = lock_factory

    def _money(self, value: Any, default: Any = None) -> Money:
        if value is None:
            value = default
        return Money.from_value(value, settings.CURRENCY_CODE)

    def resolve_location(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """
        Canonical city (and region) from the typed city or the free-text address.

        Returns:
            dict: Fields to set on the order; empty when nothing was recognized
        """
        resolved: Dict[str, Any] = {}
        city_text = (request.get("customer_city") or "").strip()

        if city_text:
            match = city_alias_resolver.resolve(city_text)
            if match is not None:
                resolved["customer_city"] = match.city_name
        elif request.get("customer_address"):
            parsed = address_parser.parse(request["customer_address"])
            match = city_alias_resolver.find_in_text(request["customer_address"])
            if parsed.city or match:
                resolved["customer_city"] = match.city_name if match else parsed.city
            if parsed.region and not request.get("customer_province"):
                resolved["customer_province"] = parsed.region

        if resolved.get("customer_city") and not request.get("customer_province"):
            resolved.setdefault("customer_province", resolved["customer_city"])
        return resolved

    async def calculate_totals(self, request: Dict[str, Any], items: List, original: Optional[OrderDomain] = None):
        """
        Totals and loyalty for a validated request.

        Returns:
            tuple: (OrderTotals, loyalty dict or None)
        """
        order_type = request.get("order_type") or OrderType.REGULAR
        delivery_fee = self._money(request.get("delivery_fee"), settings.DEFAULT_DELIVERY_FEE)

        if order_type == OrderType.REPLACEMENT:
            outgoing = [item for item in items if item.item_direction == ItemDirection.OUTGOING]
            incoming = [item for item in items if item.item_direction == ItemDirection.INCOMING]
            adjustment = request.get("price_adjustment")
            totals = self.calculator.calculate_replacement(
                outgoing,
                incoming,
                delivery_fee=delivery_fee,
                price_adjustment=self._money(adjustment) if adjustment is not None else None,
            )
            return totals, None

        if order_type == OrderType.RETURN:
            refund = request.get("refund_amount")
            totals = self.calculator.calculate_return(original, self._money(refund) if refund is not None else None)
            return totals, None

        discount = self._money(request.get("discount"), 0)
        loyalty_info = None
        if request.get("apply_loyalty", True):
            loyalty = await self.loyalty_service.get_customer_loyalty(
                request["customer_phone"], request.get("created_by")
            )
            subtotal = self.calculator.calculate_regular(items).subtotal
            loyalty_discount = calculate_loyalty_discount(subtotal, delivery_fee, loyalty.tier)
            if loyalty_discount.discount > discount:
                discount = loyalty_discount.discount
            delivery_fee = loyalty_discount.delivery_fee
            loyalty_info = {
                **loyalty.to_dict(),
                "discount": loyalty_discount.discount.amount,
                "delivery_waived": loyalty_discount.delivery_waived,
            }

        return self.calculator.calculate_regular(items, discount=discount, delivery_fee=delivery_fee), loyalty_info

    async def create_order(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an order.

        This method orchestrates the complete flow:
        1. Validate request
        2. Resolve city/region
        3. Link returns and replacements to the original order
        4. Loyalty and totals
        5. Check availability and reserve stock
        6. Persist (reservation is released if persisting fails)

        Returns:
            dict: Created order, totals, loyalty and links

        Raises:
            ValidationException: Invalid request
            InsufficientStockException: Not enough stock for an item
        """
        request = self.validator.validate(dict(request))
        order_type = request.get("order_type") or OrderType.REGULAR
        logger.info(f"Starting {order_type} order creation for {request['customer_name']}")

        location = self.resolve_location(request)
        items = OrderFactory.create_items(request["items"], settings.CURRENCY_CODE)

        links: Dict[str, Any] = {}
        original: Optional[OrderDomain] = None
        if order_type in (OrderType.RETURN, OrderType.REPLACEMENT):
            if request.get("original_order_id"):
                original = await self.order_repository.get_order(str(request["original_order_id"]))
                if original is None:
                    raise OrderNotFoundException(request["original_order_id"])
            else:
                draft = OrderFactory.create_order(request, items, self.calculator.calculate_return(None), **location)
                links = await self.linker.link_return_to_original(draft, persist=False)
                if links.get("linked"):
                    original = await self.order_repository.get_order(links["original_order_id"])

        totals, loyalty = await self.calculate_totals(request, items, original)
        overrides = dict(location)
        if original is not None:
            overrides["original_order_id"] = original.id
        order = OrderFactory.create_order(request, items, totals, **overrides)

        reserved: Dict[str, int] = {}
        if not order.is_return:
            reserved = await self.inventory_manager.validate_and_reserve(order.sent_items)

        try:
            order = await self.order_repository.create_order(order)
        except AppException:
            if reserved:
                await self.inventory_manager.release(order.sent_items)
                logger.warning(f"🔓 Reservation released after failed creation for {order.customer_phone}")
            raise

        if order.is_replacement and original is not None:
            links["replacement_pair_id"] = await self.linker.link_replacement_pair(order, original)

        logger.info(f"Successfully created {order_type} order {order.order_number or order.id}")
        return {
            "order": {**order.to_dict(), "items": [item.to_dict() for item in order.items]},
            "totals": totals.to_dict(),
            "loyalty": loyalty,
            "links": links,
            "reserved": reserved,
        }

    async def _get_order(self, order_id: str) -> OrderDomain:
        order = await self.order_repository.get_order(order_id)
        if order is None:
            raise OrderNotFoundException(order_id)
        return order

    def _recalculate(self, order: OrderDomain, changes: Dict[str, Any], items: List) -> OrderTotals:
        delivery_fee = self._money(changes.get("delivery_fee"), order.delivery_fee.amount)
        if order.is_replacement:
            adjustment = changes.get("price_adjustment")
            return self.calculator.calculate_replacement(
                [item for item in items if item.item_direction == ItemDirection.OUTGOING],
                [item for item in items if item.item_direction == ItemDirection.INCOMING],
                delivery_fee=delivery_fee,
                price_adjustment=self._money(adjustment) if adjustment is not None else None,
            )
        if order.is_return:
            refund = self._money(changes.get("refund_amount"), order.refund_amount.amount)
            return self.calculator.calculate_return(None, refund)
        discount = self._money(changes.get("discount"), order.discount.amount)
        return self.calculator.calculate_regular(items, discount=discount, delivery_fee=delivery_fee)

    def _totals_updates(self, order: OrderDomain, changes: Dict[str, Any], items: List) -> Dict[str, Any]:
        """
        Recalculated monetary columns for an edit; nothing is written here.

        A ``total_amount`` override on a regular order is measured against the
        items subtotal and stored as either a discount or a price increase.

        Raises:
            ValidationException: Totals are inconsistent with the new items
        """
        override = changes.get("total_amount") if order.order_type == OrderType.REGULAR else None
        if override is not None:
            changes = {**changes, "discount": 0}
        totals = self._recalculate(order, changes, items)

        updates: Dict[str, Any] = {
            "total_amount": totals.total_amount.amount,
            "sales_amount": totals.total_amount.amount,
            "discount": totals.discount.amount,
            "delivery_fee": totals.delivery_fee.amount,
            "final_amount": totals.final_amount.amount,
        }
        if order.is_return:
            updates["refund_amount"] = totals.refund_amount.amount
            return updates
        if order.is_replacement:
            return updates

        change_type = PriceChangeType.DISCOUNT if totals.discount.is_positive else None
        change = PriceChange(totals.discount, Money.zero(order.currency), change_type)
        if override is not None:
            new_total = self._money(override)
            if new_total.is_negative:
                raise ValidationException(
                    message="Total amount cannot be negative", field="total_amount", invalid_value=new_total.amount
                )
            change = self.calculator.apply_price_change(totals.subtotal, new_total)
            updates.update(
                total_amount=new_total.amount,
                sales_amount=new_total.amount,
                final_amount=(new_total + totals.delivery_fee).amount,
            )

        updates.update(
            discount=change.discount.amount,
            price_increase=change.price_increase.amount,
            price_change_type=change.change_type,
        )
        return updates

    async def update_order(self, order_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Edit an order while its courier state still allows it.

        Item changes adjust the reservations by difference. A ``total_amount``
        override on a regular order is stored as a discount or a price increase.

        Raises:
            OrderNotFoundException: Unknown order
            OrderStateException: Courier state does not allow editing
        """
        async with self.lock_factory(order_id):
            order = await self._get_order(order_id)
            config = self.registry.order_config(order)
            if not config.can_edit:
                raise OrderStateException(
                    message=f"Order {order.display_reference} cannot be edited in state '{config.text}'",
                    order_id=order_id,
                    current_status=order.status,
                    operation="update",
                )

            unknown = set(changes) - set(EDITABLE_FIELDS) - set(TOTALS_FIELDS)
            if unknown:
                raise ValidationException(
                    message=f"Fields not editable: {sorted(unknown)}", field="changes", invalid_value=sorted(unknown)
                )

            updates: Dict[str, Any] = {key: changes[key] for key in EDITABLE_FIELDS if key in changes}
            if "customer_city" in changes or "customer_address" in changes:
                updates.update(self.resolve_location({**order.to_dict(), **updates}))

            items = order.items
            if "items" in changes:
                self.validator.validate(
                    {**order.to_dict(), "order_type": order.order_type, "items": changes["items"], **updates}
                )
                items = OrderFactory.create_items(changes["items"], order.currency)

            if set(changes) & set(TOTALS_FIELDS):
                updates.update(self._totals_updates(order, changes, items))

            adjusted: Dict[str, int] = {}
            if "items" in changes:
                new_order_items = [item for item in items if item.item_direction != ItemDirection.OUTGOING]
                if not order.is_return:
                    adjusted = await self.inventory_manager.adjust_for_update(order.sent_items, new_order_items)
                try:
                    await self.order_repository.replace_items(order.id, items)
                except AppException:
                    if adjusted:
                        await self.inventory_manager.adjust_for_update(new_order_items, order.sent_items)
                        logger.warning(f"↩️ Reservations restored after failed item write on {order.display_reference}")
                    raise

            if updates:
                await self.order_repository.update_order(order.id, updates)

            logger.info(f"Successfully updated order {order.display_reference}: {sorted(updates)}")
            return {
                "order_id": order.id,
                "updated_fields": sorted(updates),
                "changes": updates,
                "reservations": adjusted,
            }

    async def delete_order(self, order_id: str) -> Dict[str, Any]:
        """
        Delete an order while its courier state still allows it, releasing its reservation.

        Raises:
            OrderNotFoundException: Unknown order
            OrderStateException: Courier state does not allow deleting
        """
        async with self.lock_factory(order_id):
            order = await self._get_order(order_id)
            config = self.registry.order_config(order)
            if not config.can_delete:
                raise OrderStateException(
                    message=f"Order {order.display_reference} cannot be deleted in state '{config.text}'",
                    order_id=order_id,
                    current_status=order.status,
                    operation="delete",
                )

            released: Dict[str, int] = {}
            holds_stock = not should_release_stock(order.status, order.delivery_status, order.delivery_partner)
            if not order.is_return and holds_stock:
                released = await self.inventory_manager.release(order.sent_items)

            deleted = await self.order_repository.delete_order(order.id)
            logger.info(f"🗑️ Order {order.display_reference} deleted, {len(released)} variants released")
            return {"order_id": order.id, "deleted": deleted, "released": released}


# Factory function to create orchestrator with all dependencies
def create_orchestrator(order_repository, inventory_repository) -> OrderOrchestrator:
    """
    Factory function to create a fully initialized orchestrator.

    Args:
        order_repository: OrderRepository for order operations
        inventory_repository: InventoryRepository for stock reservations

    Returns:
        OrderOrchestrator: Fully configured orchestrator
    """
    from app.services.loyalty import LoyaltyService
    from app.services.orders.linkers import ReturnLinker
    from app.services.orders.managers import InventoryManager
    from app.services.orders.validators import OrderValidator

    return OrderOrchestrator(
        validator=OrderValidator(),
        order_repository=order_repository,
        inventory_manager=InventoryManager(inventory_repository),
        loyalty_service=LoyaltyService(order_repository),
        linker=ReturnLinker(order_repository),
    )
