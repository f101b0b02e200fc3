"""Read-only query selectors."""

from labour_kernel.selectors.base import BaseSelector

__all__ = ["BaseSelector"]
