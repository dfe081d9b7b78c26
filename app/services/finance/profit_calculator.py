"""
EmployeeProfitCalculator.

Employees earn a fixed amount per unit sold, configured per product or per
category in ``employee_profit_rules``. Without a rule the employee profit is
the item margin.
"""

import logging
from typing import Dict, Iterable, Optional

from app.db.repositories import LedgerRepository
from app.domain.models import OrderItemDomain
from app.domain.value_objects.money import Money

logger = logging.getLogger(__name__)

RULE_PRODUCT = "product"
RULE_CATEGORY = "category"


class EmployeeProfitCalculator:
    """Employee profit for a set of order items."""

    def __init__(self, ledger_repository: LedgerRepository):
        self.ledger_repository = ledger_repository

    @staticmethod
    def profit_for_item(
        item: OrderItemDomain,
        product_rules: Dict[str, Money],
        category_rules: Dict[str, Money],
        category_id: Optional[str] = None,
    ) -> Money:
        """Product rule first, then category rule, then the margin (never negative)."""
        if item.product_id in product_rules:
            return product_rules[item.product_id] * item.quantity
        if category_id and category_id in category_rules:
            return category_rules[category_id] * item.quantity
        return (item.total_price - item.total_cost).max_zero()

    async def calculate(self, employee_id: Optional[str], items: Iterable[OrderItemDomain]) -> Money:
        items = list(items)
        currency = items[0].unit_price.currency if items else "IQD"
        if not employee_id or not items:
            return Money.zero(currency)

        product_rules: Dict[str, Money] = {}
        category_rules: Dict[str, Money] = {}
        for rule in await self.ledger_repository.get_employee_profit_rules(employee_id):
            amount = Money.from_value(rule["profit_amount"], currency)
            if rule["rule_type"] == RULE_PRODUCT:
                product_rules[str(rule["target_id"])] = amount
            elif rule["rule_type"] == RULE_CATEGORY:
                category_rules[str(rule["target_id"])] = amount

        categories: Dict[str, str] = {}
        if category_rules:
            categories = await self.ledger_repository.get_product_categories([item.product_id for item in items])

        total = Money.zero(currency)
        for item in items:
            total = total + self.profit_for_item(
                item, product_rules, category_rules, categories.get(item.product_id)
            )

        logger.debug(f"Employee {employee_id} profit for {len(items)} items: {total.format()}")
        return total
