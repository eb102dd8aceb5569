"""Tenant model."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_cycles.models.base import Base, CreatedAtMixin

if TYPE_CHECKING:
    from payroll_cycles.models.employee import Employee


class Tenant(Base, CreatedAtMixin):
    """A customer organisation; the isolation boundary for all data."""

    __tablename__ = "tenant"

    tenant_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_name: Mapped[str] = mapped_column(String, nullable=False)

    employees: Mapped[list[Employee]] = relationship(back_populates="tenant")
