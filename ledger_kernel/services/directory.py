"""
Collaborator interfaces: product catalog and warehouse directory.

Responsibility:
    The ledger validates that products and warehouses exist and belong to
    the right company, and derives warehouse codes for document numbers,
    but it does not own those entities.  These protocols are the seam;
    ``SqlCatalog`` and ``SqlWarehouseDirectory`` are the default
    implementations over the ``products`` and ``warehouses`` tables, and
    any object with the same methods can be injected instead.

Failure modes:
    - ProductNotFoundError for a missing, inactive or deleted product.
    - WarehouseNotFoundError for a missing warehouse.
"""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.exceptions import ProductNotFoundError, WarehouseNotFoundError
from ledger_kernel.models.directory import Product, Warehouse


@dataclass(frozen=True)
class WarehouseInfo:
    id: UUID
    company_id: UUID
    name: str


@dataclass(frozen=True)
class ProductInfo:
    id: UUID
    company_id: UUID
    name: str


class Catalog(Protocol):
    def require_active_product(self, product_id: UUID) -> ProductInfo:
        """Return the product, or raise ProductNotFoundError."""
        ...


class WarehouseDirectory(Protocol):
    def find_warehouse(self, warehouse_id: UUID) -> WarehouseInfo | None:
        ...

    def require_warehouse(self, warehouse_id: UUID) -> WarehouseInfo:
        """Return the warehouse, or raise WarehouseNotFoundError."""
        ...


def warehouse_code(
    warehouse: WarehouseInfo | None,
    length: int = 3,
    unknown: str = "DEF",
) -> str:
    """Leading letters of the warehouse name, upper-cased; ``unknown`` if absent."""
    if warehouse is None or not warehouse.name.strip():
        return unknown
    return warehouse.name.strip()[:length].upper()


class SqlCatalog:
    def __init__(self, session: Session):
        self.session = session

    def require_active_product(self, product_id: UUID) -> ProductInfo:
        product = self.session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        if product.is_deleted:
            raise ProductNotFoundError(str(product_id), reason="deleted")
        if not product.is_active:
            raise ProductNotFoundError(str(product_id), reason="inactive")
        return ProductInfo(id=product.id, company_id=product.company_id, name=product.name)


class SqlWarehouseDirectory:
    def __init__(self, session: Session):
        self.session = session

    def find_warehouse(self, warehouse_id: UUID) -> WarehouseInfo | None:
        row = self.session.execute(
            select(Warehouse.id, Warehouse.company_id, Warehouse.name)
            .where(Warehouse.id == warehouse_id)
        ).one_or_none()
        if row is None:
            return None
        return WarehouseInfo(id=row.id, company_id=row.company_id, name=row.name)

    def require_warehouse(self, warehouse_id: UUID) -> WarehouseInfo:
        info = self.find_warehouse(warehouse_id)
        if info is None:
            raise WarehouseNotFoundError(str(warehouse_id))
        return info
