"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycles.database import init_db


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, session_factory = init_db()
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def _parse_uuid(value: str, header: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header} format",
        )


async def get_tenant_id(
    x_tenant_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract tenant ID from header."""
    if not x_tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header is required",
        )
    return _parse_uuid(x_tenant_id, "X-Tenant-ID")


@dataclass(frozen=True)
class CallerIdentity:
    """Who is calling, as asserted by the upstream auth layer."""

    tenant_id: UUID
    user_id: UUID | None = None
    email: str | None = None


async def get_caller(
    tenant_id: Annotated[UUID, Depends(get_tenant_id)],
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_email: Annotated[str | None, Header()] = None,
) -> CallerIdentity:
    """Build the caller identity from the auth headers."""
    user_id = _parse_uuid(x_user_id, "X-User-ID") if x_user_id else None
    return CallerIdentity(tenant_id=tenant_id, user_id=user_id, email=x_user_email or None)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
TenantId = Annotated[UUID, Depends(get_tenant_id)]
Caller = Annotated[CallerIdentity, Depends(get_caller)]
