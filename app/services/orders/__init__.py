"""
Order services package: capture, pricing and editing of orders.

This package contains all services related to order processing,
following SOLID principles for better maintainability.
"""
