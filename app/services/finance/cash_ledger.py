"""
CashLedger: movements on the cash boxes.

Each movement stores the balance before and after it, and the source
balance moves in the same transaction.
"""

import logging
from typing import Optional

from app.core.config import get_settings
from app.db.repositories import CashRepository
from app.domain.models import CashMovement, CashSource, MovementType
from app.domain.value_objects.money import Money
from app.utils.error_handler import ProcessingException, ValidationException

settings = get_settings()
logger = logging.getLogger(__name__)


class CashLedger:
    """Records in/out movements against a cash source."""

    # Re-read the balance this many times when another movement lands first
    MAX_BALANCE_RETRIES = 3

    def __init__(self, cash_repository: CashRepository, currency: str = settings.CURRENCY_CODE):
        self.cash_repository = cash_repository
        self.currency = currency

    async def get_main_source(self) -> Optional[CashSource]:
        """The main cash box (القاصة الرئيسية), or None if it does not exist."""
        row = await self.cash_repository.get_source_by_name(settings.MAIN_CASH_SOURCE_NAME)
        if row is None:
            logger.warning(f"⚠️ Main cash source '{settings.MAIN_CASH_SOURCE_NAME}' not found")
            return None
        return CashSource.from_dict(row, self.currency)

    async def record_movement(
        self,
        source: CashSource,
        movement_type: str,
        amount: Money,
        description: str,
        reference_type: str,
        reference_id: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> CashMovement:
        """
        Record a movement and update the source balance.

        Args:
            source: Cash box to move
            movement_type: ``in`` or ``out``
            amount: Positive amount
            description: Arabic description shown in the cash report
            reference_type: What the movement belongs to (order, return_order...)
            reference_id: Id of that record

        Returns:
            CashMovement: The stored movement

        Raises:
            ValidationException: Invalid type or non-positive amount
            ProcessingException: The balance kept changing concurrently
        """
        if movement_type not in MovementType.ALL:
            raise ValidationException(
                message=f"Invalid movement type: {movement_type}",
                field="movement_type",
                invalid_value=movement_type,
                expected_format="in | out",
            )
        if not amount.is_positive:
            raise ValidationException(
                message="Movement amount must be positive", field="amount", invalid_value=amount.amount
            )

        for attempt in range(1, self.MAX_BALANCE_RETRIES + 1):
            before = source.current_balance
            after = before + amount if movement_type == MovementType.IN else before - amount
            movement = CashMovement(
                cash_source_id=source.id,
                movement_type=movement_type,
                amount=amount,
                balance_before=before,
                balance_after=after,
                description=description,
                reference_type=reference_type,
                reference_id=reference_id,
                created_by=created_by,
            )

            if await self.cash_repository.apply_movement(movement):
                source.current_balance = after
                logger.info(
                    f"💵 Cash {movement_type} {amount.format()} on '{source.name}': "
                    f"{before.format()} → {after.format()} ({description})"
                )
                return movement

            logger.warning(f"🔄 Balance of '{source.name}' changed concurrently (attempt {attempt})")
            fresh = await self.cash_repository.get_source(source.id)
            if fresh is None:
                break
            source.current_balance = Money.from_value(fresh["current_balance"], self.currency)

        raise ProcessingException(
            message=f"Could not record cash movement on '{source.name}'",
            service="finance",
            operation="record_movement",
            stats={"attempts": self.MAX_BALANCE_RETRIES},
        )
