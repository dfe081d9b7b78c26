"""
Courier merchant API clients.
"""

from .waseet_client import WaseetClient, chunk_unique_ids

__all__ = ["WaseetClient", "chunk_unique_ids"]
