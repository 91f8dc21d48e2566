"""Pure domain helpers: clock, tenant context, calendar periods."""

from messflow_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from messflow_kernel.domain.tenant import (
    ScopedTenantContext,
    StaticTenantContext,
    TenantContext,
    tenant_scope,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "TenantContext",
    "StaticTenantContext",
    "ScopedTenantContext",
    "tenant_scope",
]
