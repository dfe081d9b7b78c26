"""Order linkers."""

from .return_linker import ReturnLinker

__all__ = ["ReturnLinker"]
