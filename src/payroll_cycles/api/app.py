"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payroll_cycles import __version__
from payroll_cycles.api.routes import (
    cycles_router,
    employees_router,
    health_router,
    leave_router,
    payroll_router,
)
from payroll_cycles.config import get_settings
from payroll_cycles.database import dispose_db, init_db
from payroll_cycles.errors import (
    CompensationAlreadyExistsError,
    CompensationMissingError,
    CycleAlreadyExistsError,
    CycleNotFoundError,
    EmployeeAlreadyExistsError,
    EmployeeNotFoundError,
    IllegalTransitionError,
    InvalidPeriodError,
    LeaveAlreadyDecidedError,
    LeaveRequestNotFoundError,
    PayrollError,
    PersistenceFailureError,
    RejectionReasonRequiredError,
)

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins.
ERROR_STATUS_CODES: list[tuple[type[PayrollError], int]] = [
    (InvalidPeriodError, status.HTTP_400_BAD_REQUEST),
    (RejectionReasonRequiredError, status.HTTP_400_BAD_REQUEST),
    (CycleNotFoundError, status.HTTP_404_NOT_FOUND),
    (CompensationMissingError, status.HTTP_404_NOT_FOUND),
    (EmployeeNotFoundError, status.HTTP_404_NOT_FOUND),
    (LeaveRequestNotFoundError, status.HTTP_404_NOT_FOUND),
    (CycleAlreadyExistsError, status.HTTP_409_CONFLICT),
    (IllegalTransitionError, status.HTTP_409_CONFLICT),
    (EmployeeAlreadyExistsError, status.HTTP_409_CONFLICT),
    (CompensationAlreadyExistsError, status.HTTP_409_CONFLICT),
    (LeaveAlreadyDecidedError, status.HTTP_409_CONFLICT),
    (PersistenceFailureError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_code_for(exc: PayrollError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    init_db()
    yield
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Payroll Cycle Engine API",
        description="Monthly payroll cycles: computation, approval workflow and payslips",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(get_settings().cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PayrollError)
    async def payroll_error_handler(request: Request, exc: PayrollError) -> JSONResponse:
        """Map domain errors to JSON responses."""
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "code": exc.code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    app.include_router(health_router)
    app.include_router(cycles_router, prefix="/api/v1")
    app.include_router(payroll_router, prefix="/api/v1")
    app.include_router(employees_router, prefix="/api/v1")
    app.include_router(leave_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
