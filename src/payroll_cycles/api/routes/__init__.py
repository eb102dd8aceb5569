"""API routes."""

from payroll_cycles.api.routes.cycles import router as cycles_router
from payroll_cycles.api.routes.employees import router as employees_router
from payroll_cycles.api.routes.health import router as health_router
from payroll_cycles.api.routes.leave import router as leave_router
from payroll_cycles.api.routes.payroll import router as payroll_router

__all__ = [
    "cycles_router",
    "employees_router",
    "health_router",
    "leave_router",
    "payroll_router",
]
