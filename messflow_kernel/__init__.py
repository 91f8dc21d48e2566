"""
Messflow Kernel

Shared infrastructure for the mess ledger and payroll engine:
- Typed exceptions with machine-readable codes
- Structured JSON logging
- SQLAlchemy base classes, engine and session scope
- Injectable clock and tenant context
"""

__version__ = "0.1.0"
