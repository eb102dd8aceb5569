"""Multi-tenant monthly payroll cycle engine."""

__version__ = "0.1.0"
