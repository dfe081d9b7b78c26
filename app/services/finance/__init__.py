"""Order bookkeeping: cash movements, ledger entries and profits."""

from .cash_ledger import CashLedger
from .invoice_receipt import InvoiceReceiptService
from .partial_delivery_handler import PartialDeliveryFinancialHandler
from .profit_adjustment import ProfitAdjuster, ProfitAdjustment
from .profit_calculator import EmployeeProfitCalculator
from .replacement_handler import ReplacementFinancialHandler
from .return_status_handler import ReturnStatusHandler

__all__ = [
    "CashLedger",
    "EmployeeProfitCalculator",
    "InvoiceReceiptService",
    "PartialDeliveryFinancialHandler",
    "ProfitAdjuster",
    "ProfitAdjustment",
    "ReplacementFinancialHandler",
    "ReturnStatusHandler",
]
