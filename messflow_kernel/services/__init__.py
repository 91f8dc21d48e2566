"""Kernel service infrastructure."""

from messflow_kernel.services.base import BaseService

__all__ = ["BaseService"]
