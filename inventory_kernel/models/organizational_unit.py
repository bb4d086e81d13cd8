"""
Module: inventory_kernel.models.organizational_unit
Responsibility: Minimal catalog of organizational units (ministries and
    their structures).  The workflow reads it for numbering abbreviations,
    parent-unit defaults and scope checks; unit management itself lives
    outside the kernel.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, UTCDateTime, UUIDString


class OrganizationalUnitModel(Base):
    """A ministry (no parent) or a structure inside a ministry."""

    __tablename__ = "organizational_units"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    abbreviation: Mapped[str | None] = mapped_column(String(20), nullable=True)
    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("organizational_units.id"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<OrganizationalUnit {self.abbreviation or self.name}>"
