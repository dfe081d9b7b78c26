"""Order totals calculators."""

from .totals_calculator import OrderTotals, PriceChange, TotalsCalculator, items_subtotal

__all__ = ["OrderTotals", "PriceChange", "TotalsCalculator", "items_subtotal"]
