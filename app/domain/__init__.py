"""
Domain layer for the orders back-office.

This layer contains business entities, value objects, and domain logic
following Domain-Driven Design principles.
"""
