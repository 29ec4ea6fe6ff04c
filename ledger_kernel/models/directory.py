"""
Module: ledger_kernel.models.directory
Responsibility: Minimal ORM tables for the two collaborators the ledger
    consults but does not own: the product catalog and the warehouse
    directory.  Product and warehouse CRUD live outside the ledger; these
    tables carry only what the ledger reads.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from uuid import UUID

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base, UUIDString


class Product(Base):
    """A catalog product.  Only active, non-deleted products can move stock."""

    __tablename__ = "products"

    company_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Warehouse(Base):
    """A company warehouse.  The first three letters of its name form its code."""

    __tablename__ = "warehouses"

    __table_args__ = (
        Index("idx_warehouse_company", "company_id"),
    )

    company_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
