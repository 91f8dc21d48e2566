"""Read-only query infrastructure."""

from messflow_kernel.selectors.base import BaseSelector

__all__ = ["BaseSelector"]
